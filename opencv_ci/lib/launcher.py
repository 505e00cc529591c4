from __future__ import annotations

import logging
import shutil
from typing import Callable, Dict, Mapping, Optional, Sequence

from ..errors import LauncherResolutionFailed

logger = logging.getLogger(__name__)

Which = Callable[..., Optional[str]]


def resolve_launchers(
    environ: Mapping[str, str],
    *,
    variables: Sequence[str],
    launcher_name: str,
    path: Optional[str] = None,
    which: Optional[Which] = None,
) -> Dict[str, str]:
    """Return overrides replacing a bare launcher name with its absolute path.

    `sudo make install` inside the installer runs with a reset PATH, so CMake can
    no longer find a launcher given by bare name. Variables holding anything other
    than exactly `launcher_name` are left alone.
    """

    which = which or shutil.which
    overrides: Dict[str, str] = {}
    for var in variables:
        if environ.get(var) != launcher_name:
            continue
        resolved = which(launcher_name, path=path)
        if not resolved:
            raise LauncherResolutionFailed(var, launcher_name)
        logger.info("Rewriting %s: %s -> %s", var, launcher_name, resolved)
        overrides[var] = resolved
    return overrides
