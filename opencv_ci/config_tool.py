from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .errors import ConfigError
from .install_config import load_install_config, template

logger = logging.getLogger(__name__)


def write_template(path: str, *, force: bool = False) -> Path:
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML is required to write the config template") from e

    p = Path(path)
    if p.exists() and not force:
        raise ConfigError(f"{path} already exists (use --force to overwrite)")
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(yaml.safe_dump(template(), sort_keys=False), encoding="utf-8")
    logger.info("Wrote install config template %s", p)
    return p


def check(path: str, *, fmt: str = "env") -> str:
    """Validate a config file and render what the installers would receive."""

    cfg = load_install_config(path)
    if fmt == "sh":
        return cfg.render_shell()
    return "".join(f"{k}={v}\n" for k, v in cfg.to_env().items())


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="opencv-ci-config")
    sub = p.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init", help="Write a YAML install config template")
    p_init.add_argument("path")
    p_init.add_argument("--force", action="store_true", help="Overwrite an existing file")

    p_check = sub.add_parser("check", help="Validate an install config and print its variables")
    p_check.add_argument("path")
    p_check.add_argument("--format", choices=["env", "sh"], default="env")

    args = p.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "init":
            write_template(args.path, force=bool(args.force))
        else:
            sys.stdout.write(check(args.path, fmt=args.format))
    except ConfigError as e:
        logger.error("%s", e)
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
