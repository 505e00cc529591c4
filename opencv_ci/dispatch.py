from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .ci_config import BuildVariant, CiConfig
from .install_config import optional_install_config
from .installers import InstallerRegistry
from .lib.diskspace import ReclaimResult, reclaim_disk_space
from .lib.env import TOOLCHAIN
from .lib.host import OsFamily, classify_host
from .lib.launcher import resolve_launchers

logger = logging.getLogger(__name__)

Reclaimer = Callable[[CiConfig], ReclaimResult]


@dataclass(frozen=True)
class DispatchResult:
    family: OsFamily
    variant: BuildVariant
    installer: str
    env_overrides: Dict[str, str] = field(default_factory=dict)
    reclaim: Optional[ReclaimResult] = None


def default_reclaimer(config: CiConfig) -> ReclaimResult:
    return reclaim_disk_space(config.reclaim_paths, dry_run=config.dry_run)


def select_variant(family: OsFamily, config: CiConfig) -> BuildVariant:
    """First matching flag wins; the order per family is fixed."""

    if family is OsFamily.MACOS:
        if config.brew_requested:
            return BuildVariant.BREW
        if config.vcpkg_requested:
            return BuildVariant.VCPKG
        return BuildVariant.FRAMEWORK

    if config.vcpkg_requested:
        return BuildVariant.VCPKG
    return BuildVariant.PACKAGE_MANAGER


def _reclaim(config: CiConfig, reclaimer: Reclaimer) -> Optional[ReclaimResult]:
    if not config.reclaim:
        logger.info("Disk reclaim skipped")
        return None
    try:
        result = reclaimer(config)
    except Exception as e:
        result = ReclaimResult(attempted=list(config.reclaim_paths), ok=False, error=str(e))
    if result.ok:
        logger.info("Disk reclaim done: %s", ", ".join(result.attempted) or "nothing removed")
    else:
        logger.warning("Disk reclaim failed (continuing): %s", result.error)
    return result


def dispatch(
    host_signature: str,
    config: CiConfig,
    registry: InstallerRegistry,
    *,
    reclaimer: Reclaimer = default_reclaimer,
) -> DispatchResult:
    """Pick and run the single installer for this host and build variant.

    Raises UnsupportedPlatform before touching anything for BSD/unknown hosts,
    LauncherResolutionFailed or ConfigError before any installer runs, and
    InstallerFailed with the installer's own status.
    """

    family = classify_host(host_signature)
    overrides: Dict[str, str] = {}
    reclaim: Optional[ReclaimResult] = None

    if family is OsFamily.LINUX:
        reclaim = _reclaim(config, reclaimer)

    variant = select_variant(family, config)
    logger.info("Build variant: %s", variant.value)

    if family is OsFamily.LINUX and variant is BuildVariant.PACKAGE_MANAGER:
        overrides.update(
            resolve_launchers(
                config.environ,
                variables=TOOLCHAIN.launcher_vars,
                launcher_name=TOOLCHAIN.launcher_name,
                path=config.search_path,
            )
        )
    elif family is OsFamily.WINDOWS:
        overrides[TOOLCHAIN.llvm_version_var] = TOOLCHAIN.llvm_version
        logger.info("%s=%s", TOOLCHAIN.llvm_version_var, TOOLCHAIN.llvm_version)

    installer = registry.get(family, variant)
    install_config = optional_install_config(config.install_config_path)

    env = dict(config.environ)
    if install_config is not None:
        env.update(install_config.to_env())
    env.update(overrides)

    logger.info("Running installer %s", installer.name)
    installer.install(env)
    logger.info("Installer %s finished", installer.name)

    return DispatchResult(
        family=family,
        variant=variant,
        installer=installer.name,
        env_overrides=overrides,
        reclaim=reclaim,
    )
