from __future__ import annotations

import argparse
import logging
import os
from typing import Mapping, Optional

from .ci_config import CiConfig
from .dispatch import DispatchResult, dispatch
from .errors import DispatchError
from .installers import InstallerRegistry, default_registry
from .lib.host import detect_host_signature
from .logging_utils import configure_logging, default_log_path

logger = logging.getLogger(__name__)


def run(
    *,
    environ: Optional[Mapping[str, str]] = None,
    host: Optional[str] = None,
    ci_dir: Optional[str] = None,
    install_config_path: Optional[str] = None,
    reclaim: bool = True,
    dry_run: bool = False,
    registry: Optional[InstallerRegistry] = None,
) -> DispatchResult:
    """Capture the environment once, then dispatch to the matching installer."""

    env = os.environ if environ is None else environ
    config = CiConfig.from_env(
        env,
        ci_dir=ci_dir,
        install_config_path=install_config_path,
        reclaim=reclaim,
        dry_run=dry_run,
    )
    host_signature = host or detect_host_signature(config.environ)
    logger.info("Host signature: %s", host_signature)

    if registry is None:
        registry = default_registry(config.ci_dir, dry_run=config.dry_run)

    return dispatch(host_signature, config, registry)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="opencv-ci-install",
        description="Install OpenCV for CI using the script matching this OS and build variant.",
    )
    p.add_argument("--ci-dir", default=None, help="Directory with install-*.sh scripts (default: $OPENCV_CI_DIR or ./ci)")
    p.add_argument("--host", default=None, help="Host signature override (default: $OSTYPE or detected)")
    p.add_argument("--config", default=None, help="Install config (yaml|sh) (default: $OPENCV_CI_CONFIG)")
    p.add_argument("--log", default=None, help="Path to log file (default: $RUNNER_TEMP or the system temp dir)")
    p.add_argument("--skip-reclaim", action="store_true", help="Do not remove unused toolchains on Linux")
    p.add_argument("--dry-run", action="store_true", help="Log commands without running them")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log or default_log_path(os.environ))

    try:
        result = run(
            host=args.host,
            ci_dir=args.ci_dir,
            install_config_path=args.config,
            reclaim=not args.skip_reclaim,
            dry_run=bool(args.dry_run),
        )
    except DispatchError as e:
        logger.error("%s", e)
        return e.exit_code
    except Exception:
        logger.exception("Dispatch failed")
        raise

    logger.info("Done: %s/%s via %s", result.family.value, result.variant.value, result.installer)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
