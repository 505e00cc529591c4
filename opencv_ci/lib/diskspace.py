from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReclaimResult:
    attempted: List[str]
    ok: bool
    error: Optional[str] = None
    skipped: List[str] = field(default_factory=list)


def _needs_sudo() -> bool:
    geteuid = getattr(os, "geteuid", None)
    if geteuid is None or geteuid() == 0:
        return False
    return shutil.which("sudo") is not None


def reclaim_disk_space(
    paths: Sequence[str],
    *,
    sudo: Optional[bool] = None,
    dry_run: bool = False,
) -> ReclaimResult:
    """Best-effort removal of large unused directories.

    Never raises: the caller logs the result and moves on.
    """

    existing = [p for p in paths if os.path.lexists(p)]
    skipped = [p for p in paths if p not in existing]
    if not existing:
        logger.info("Disk reclaim: nothing to remove")
        return ReclaimResult(attempted=[], ok=True, skipped=skipped)

    use_sudo = _needs_sudo() if sudo is None else sudo
    argv = (["sudo", "-n"] if use_sudo else []) + ["rm", "-rf", *existing]

    try:
        r = run_cmd(argv, check=False, dry_run=dry_run)
    except OSError as e:
        return ReclaimResult(attempted=existing, ok=False, error=str(e), skipped=skipped)

    if r.returncode != 0:
        err = (r.stderr or "").strip() or f"exit status {r.returncode}"
        return ReclaimResult(attempted=existing, ok=False, error=err, skipped=skipped)

    return ReclaimResult(attempted=existing, ok=True, skipped=skipped)
