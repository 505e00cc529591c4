from __future__ import annotations

import enum
import logging
import platform
import sys
from typing import Mapping, Optional

from ..errors import UnsupportedPlatform

logger = logging.getLogger(__name__)


class OsFamily(str, enum.Enum):
    LINUX = "Linux"
    MACOS = "macOS"
    WINDOWS = "Windows"


_WINDOWS_TOKENS = ("cygwin", "msys", "win32")


def detect_host_signature(environ: Optional[Mapping[str, str]] = None) -> str:
    """Return an $OSTYPE-style host signature.

    bash sets OSTYPE but rarely exports it, so when it is absent we derive an
    equivalent from the running interpreter: linux-gnu, darwin<release>, win32,
    cygwin, msys, freebsd13, ...
    """

    env = environ if environ is not None else {}
    ostype = (env.get("OSTYPE") or "").strip()
    if ostype:
        return ostype

    plat = sys.platform
    if plat.startswith("linux"):
        return "linux-gnu"
    if plat == "darwin":
        return f"darwin{platform.release()}"
    return plat


def classify_host(host_signature: str) -> OsFamily:
    """Map a host signature to an OS family.

    Order matters: Linux, then Darwin, then the Windows shells, then BSD.
    Anything left over is unknown. BSD and unknown both raise UnsupportedPlatform.
    """

    sig = host_signature.strip().lower()

    if sig.startswith("linux"):
        family = OsFamily.LINUX
    elif sig.startswith("darwin") or sig.startswith("macos"):
        family = OsFamily.MACOS
    elif any(sig.startswith(t) for t in _WINDOWS_TOKENS):
        family = OsFamily.WINDOWS
    elif "bsd" in sig:
        raise UnsupportedPlatform(host_signature, f"{_bsd_name(sig)} is not supported")
    else:
        raise UnsupportedPlatform(host_signature, f"Unknown OS: {host_signature}")

    logger.info("Host %s classified as %s", host_signature, family.value)
    return family


def _bsd_name(sig: str) -> str:
    for name in ("FreeBSD", "OpenBSD", "NetBSD"):
        if sig.startswith(name.lower()):
            return name
    return "BSD"
