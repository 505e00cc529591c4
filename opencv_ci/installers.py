from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, Protocol, Tuple

from .ci_config import BuildVariant
from .errors import InstallerFailed, NoInstallerRegistered
from .lib.command import run_cmd
from .lib.env import TOOLCHAIN
from .lib.host import OsFamily

logger = logging.getLogger(__name__)


class Installer(Protocol):
    """Installs OpenCV for one (OS family, build variant) pair.

    Implementations must be safe to re-run and raise InstallerFailed on failure.
    """

    name: str

    def install(self, env: Mapping[str, str]) -> None:
        ...


@dataclass(frozen=True)
class ScriptInstaller:
    """Runs one of the sibling install-*.sh scripts under bash with the given environment.

    bash reports a missing script as 127, like the original dispatcher would.
    """

    name: str
    script: Path
    dry_run: bool = False

    def install(self, env: Mapping[str, str]) -> None:
        try:
            r = run_cmd(
                [TOOLCHAIN.shell, str(self.script)],
                check=False,
                base_env=env,
                capture=False,
                dry_run=self.dry_run,
            )
        except FileNotFoundError as e:
            logger.error("%s not found, cannot run %s", TOOLCHAIN.shell, self.script)
            # Same status a shell reports for a command it cannot find.
            raise InstallerFailed(self.name, 127) from e
        except OSError as e:
            logger.error("Could not start %s: %s", self.script, e)
            raise InstallerFailed(self.name, 126) from e

        if r.returncode != 0:
            raise InstallerFailed(self.name, r.returncode)


Key = Tuple[OsFamily, BuildVariant]

# Script names under the CI directory, one per supported combination.
SCRIPTS: Dict[Key, str] = {
    (OsFamily.LINUX, BuildVariant.VCPKG): "install-ubuntu-vcpkg.sh",
    (OsFamily.LINUX, BuildVariant.PACKAGE_MANAGER): "install-ubuntu.sh",
    (OsFamily.MACOS, BuildVariant.BREW): "install-macos-brew.sh",
    (OsFamily.MACOS, BuildVariant.VCPKG): "install-macos-vcpkg.sh",
    (OsFamily.MACOS, BuildVariant.FRAMEWORK): "install-macos-framework.sh",
    (OsFamily.WINDOWS, BuildVariant.VCPKG): "install-windows-vcpkg.sh",
    (OsFamily.WINDOWS, BuildVariant.PACKAGE_MANAGER): "install-windows-chocolatey.sh",
}


class InstallerRegistry:
    def __init__(self, installers: Mapping[Key, Installer] | None = None) -> None:
        self._installers: Dict[Key, Installer] = dict(installers or {})

    def register(self, family: OsFamily, variant: BuildVariant, installer: Installer) -> None:
        self._installers[(family, variant)] = installer

    def get(self, family: OsFamily, variant: BuildVariant) -> Installer:
        try:
            return self._installers[(family, variant)]
        except KeyError:
            raise NoInstallerRegistered(family.value, variant.value) from None

    def __iter__(self) -> Iterator[Key]:
        return iter(self._installers)

    def __len__(self) -> int:
        return len(self._installers)


def default_registry(ci_dir: str, *, dry_run: bool = False) -> InstallerRegistry:
    base = Path(ci_dir)
    registry = InstallerRegistry()
    for (family, variant), script in SCRIPTS.items():
        registry.register(
            family,
            variant,
            ScriptInstaller(name=script, script=base / script, dry_run=dry_run),
        )
    return registry
