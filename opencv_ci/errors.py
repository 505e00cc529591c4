from __future__ import annotations


class DispatchError(RuntimeError):
    """Fatal dispatch failure. exit_code is what the process exits with."""

    exit_code: int = 1


class UnsupportedPlatform(DispatchError):
    def __init__(self, host_signature: str, message: str) -> None:
        super().__init__(message)
        self.host_signature = host_signature


class LauncherResolutionFailed(DispatchError):
    def __init__(self, variable: str, launcher: str) -> None:
        super().__init__(f"{variable}={launcher}: '{launcher}' not found on PATH")
        self.variable = variable
        self.launcher = launcher


class InstallerFailed(DispatchError):
    def __init__(self, name: str, exit_status: int) -> None:
        super().__init__(f"Installer {name} failed with exit status {exit_status}")
        self.name = name
        self.exit_status = exit_status
        if exit_status > 0:
            self.exit_code = exit_status
        elif exit_status < 0:
            # Killed by a signal; report it the way a shell would.
            self.exit_code = 128 - exit_status
        else:
            self.exit_code = 1


class ConfigError(DispatchError):
    """Companion configuration file is missing or invalid."""


class NoInstallerRegistered(DispatchError):
    def __init__(self, family: str, variant: str) -> None:
        super().__init__(f"No installer registered for {family}/{variant}")
        self.family = family
        self.variant = variant
