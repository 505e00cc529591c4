from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Paths:
    ci_dir_default: str = "ci"
    log_name: str = "opencv-ci-install.log"
    # Large toolchains preinstalled on GitHub Actions runners that the build never uses.
    reclaim_targets: Tuple[str, ...] = (
        "/usr/share/dotnet",
        "/opt/ghc",
        "/usr/local/share/boost",
    )


@dataclass(frozen=True)
class Toolchain:
    # Installers are bash scripts; run them the way the bash parent script did.
    shell: str = "bash"
    llvm_version_var: str = "CHOCO_LLVM_VERSION"
    llvm_version: str = "19.1.5"
    launcher_name: str = "sccache"
    launcher_vars: Tuple[str, ...] = (
        "CMAKE_C_COMPILER_LAUNCHER",
        "CMAKE_CXX_COMPILER_LAUNCHER",
    )


PATHS = Paths()
TOOLCHAIN = Toolchain()
