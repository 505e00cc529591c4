from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from .lib.env import PATHS


class BuildVariant(str, enum.Enum):
    VCPKG = "vcpkg"
    PACKAGE_MANAGER = "package-manager"
    BREW = "brew"
    FRAMEWORK = "framework"


def _flag(environ: Mapping[str, str], name: str) -> Optional[str]:
    # Empty means unset, matching `[[ "${VAR:-}" != "" ]]`.
    value = environ.get(name)
    return value or None


@dataclass(frozen=True)
class CiConfig:
    """Everything a dispatch run reads from its surroundings, captured once."""

    environ: Mapping[str, str]
    ci_dir: str = PATHS.ci_dir_default
    install_config_path: Optional[str] = None
    reclaim_paths: Tuple[str, ...] = PATHS.reclaim_targets
    reclaim: bool = True
    dry_run: bool = False

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str],
        *,
        ci_dir: Optional[str] = None,
        install_config_path: Optional[str] = None,
        reclaim: bool = True,
        dry_run: bool = False,
    ) -> "CiConfig":
        snapshot = MappingProxyType(dict(environ))
        return cls(
            environ=snapshot,
            ci_dir=ci_dir or snapshot.get("OPENCV_CI_DIR") or PATHS.ci_dir_default,
            install_config_path=install_config_path or snapshot.get("OPENCV_CI_CONFIG") or None,
            reclaim=reclaim,
            dry_run=dry_run,
        )

    @property
    def search_path(self) -> Optional[str]:
        return self.environ.get("PATH")

    @property
    def vcpkg_version(self) -> Optional[str]:
        return _flag(self.environ, "VCPKG_VERSION")

    @property
    def brew_opencv_version(self) -> Optional[str]:
        return _flag(self.environ, "BREW_OPENCV_VERSION")

    @property
    def vcpkg_requested(self) -> bool:
        return self.vcpkg_version is not None

    @property
    def brew_requested(self) -> bool:
        return self.brew_opencv_version is not None
