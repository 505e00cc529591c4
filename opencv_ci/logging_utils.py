from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from .lib.env import PATHS


def default_log_path(environ: Mapping[str, str]) -> str:
    """Log next to the runner's scratch files, never inside the checkout."""
    base = environ.get("RUNNER_TEMP") or tempfile.gettempdir()
    return os.path.join(base, PATHS.log_name)


DEFAULT_LOG_PATH = default_log_path(os.environ)


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Configure logging.

    Every decision the dispatcher makes is recorded to log_path and echoed to the
    console so it shows up in the CI job output.

    If log_path cannot be created (read-only checkout, missing permissions) we fall
    back to a file in the working directory. Returns the path actually used.
    """

    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid duplicate handlers if configure_logging() is called multiple times.
    if getattr(logger, "_opencv_ci_configured", False):
        return getattr(logger, "_opencv_ci_log_path", log_path)

    handlers: list[logging.Handler] = []

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )

    file_handler: Optional[logging.Handler] = None
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        chosen_path = log_path
    except OSError:
        chosen_path = str(Path.cwd() / PATHS.log_name)
        file_handler = logging.FileHandler(chosen_path)
    file_handler.setFormatter(fmt)
    handlers.append(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(fmt)
        handlers.append(console)

    for h in handlers:
        logger.addHandler(h)

    setattr(logger, "_opencv_ci_configured", True)
    setattr(logger, "_opencv_ci_log_path", chosen_path)

    logging.getLogger(__name__).info(
        "Logging initialized (requested=%s, actual=%s)", log_path, chosen_path
    )
    return chosen_path
