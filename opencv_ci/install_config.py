from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionLayout:
    """Where one OpenCV major version lives, relative to base_dir."""

    env_prefix: str
    cmake_dir: str
    header_dir: str
    ld_library_path: str


# Keyed by the branch name the bindings are generated against.
VERSIONS: Dict[str, VersionLayout] = {
    "3.4": VersionLayout(
        env_prefix="OPENCV_34",
        cmake_dir="opencv-3.4/install/share/OpenCV",
        header_dir="opencv-3.4/install/include/",
        ld_library_path="opencv-3.4/install/lib64/",
    ),
    "4.x": VersionLayout(
        env_prefix="OPENCV_4",
        cmake_dir="opencv-4/install/lib64/cmake/opencv4",
        header_dir="opencv-4/install/include/opencv4",
        ld_library_path="opencv-4/install/lib64/",
    ),
    "5.x": VersionLayout(
        env_prefix="OPENCV_5",
        cmake_dir="opencv-5/install/lib64/cmake/opencv5",
        header_dir="opencv-5/install/include/opencv5",
        ld_library_path="opencv-5/install/lib64/",
    ),
}

_VERSION_FIELDS = ("cmake_dir", "header_dir", "ld_library_path")

REMOTE_HOST_VARS = {"macos": "MACOS_ADDR", "windows": "WIN_ADDR"}

_PLACEHOLDER_RE = re.compile(r"^<.*>$")


@dataclass(frozen=True)
class VersionPaths:
    cmake_dir: str
    header_dir: str
    ld_library_path: str
    additional_include_dirs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InstallConfig:
    raw: Dict[str, Any]

    @property
    def base_dir(self) -> str:
        return str(self.raw["base_dir"])

    @property
    def bindings_out_dir(self) -> str:
        return str(self.raw.get("bindings_out_dir") or f"{self.base_dir}/bindings")

    def version(self, key: str) -> VersionPaths:
        layout = VERSIONS[key]
        entry = (self.raw.get("versions") or {}).get(key) or {}
        paths = {
            name: str(entry.get(name) or f"{self.base_dir}/{getattr(layout, name)}")
            for name in _VERSION_FIELDS
        }
        return VersionPaths(
            additional_include_dirs=_as_dir_list(entry.get("additional_include_dirs")),
            **paths,
        )

    @property
    def remote_hosts(self) -> Dict[str, str]:
        hosts = self.raw.get("remote_hosts") or {}
        return {k: str(v) for k, v in hosts.items() if v}

    def to_env(self) -> Dict[str, str]:
        """Variables the installer scripts expect, named as in config.sh."""

        env: Dict[str, str] = {"BINDINGS_OUT_DIR": self.bindings_out_dir}
        for key, layout in VERSIONS.items():
            v = self.version(key)
            env[f"{layout.env_prefix}_CMAKE_DIR"] = v.cmake_dir
            env[f"{layout.env_prefix}_HEADER_DIR"] = v.header_dir
            env[f"{layout.env_prefix}_LD_LIBRARY_PATH"] = v.ld_library_path
            env[f"{layout.env_prefix}_ADDITIONAL_INCLUDE_DIRS"] = " ".join(v.additional_include_dirs)
        for name, addr in self.remote_hosts.items():
            env[REMOTE_HOST_VARS[name]] = addr
        return env

    def render_shell(self) -> str:
        lines = [
            f"opencv_lib_base_dir={shlex.quote(self.base_dir)}",
            f"BINDINGS_OUT_DIR={shlex.quote(self.bindings_out_dir)}",
        ]
        env = self.to_env()
        for key, layout in VERSIONS.items():
            lines += ["", f"# {key}"]
            for suffix in ("CMAKE_DIR", "HEADER_DIR", "LD_LIBRARY_PATH", "ADDITIONAL_INCLUDE_DIRS"):
                name = f"{layout.env_prefix}_{suffix}"
                lines.append(f"{name}={shlex.quote(env[name])}")
        hosts = self.remote_hosts
        if hosts:
            lines += ["", "# other OS machines"]
            for name, var in REMOTE_HOST_VARS.items():
                if name in hosts:
                    lines.append(f"{var}={shlex.quote(hosts[name])}")
        return "\n".join(lines) + "\n"


def _as_dir_list(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    return tuple(str(v) for v in value)


def template() -> Dict[str, Any]:
    """Starting point for a new config file, with placeholders to fill in."""

    return {
        "base_dir": "<home of the separate opencv install>",
        "versions": {key: {"additional_include_dirs": []} for key in VERSIONS},
        "remote_hosts": {
            "macos": "<ssh address for macos machine>",
            "windows": "<ssh address for win machine>",
        },
    }


# --- shell (config.sh) format ---------------------------------------------

_ASSIGN_RE = re.compile(r"^(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")
_VAR_RE = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}|([A-Za-z_][A-Za-z0-9_]*))")
# Any other ${...} form (${A-x}, ${A:=x}, ${#A}, ...).
_UNSUPPORTED_RE = re.compile(r"\$\{(?![A-Za-z_][A-Za-z0-9_]*(?::-[^}]*)?\})[^}]*\}?")


def _expand(value: str, variables: Mapping[str, str]) -> str:
    bad = _UNSUPPORTED_RE.search(value)
    if bad:
        raise ValueError(f"unsupported parameter expansion {bad.group(0)!r}")

    def sub(m: "re.Match[str]") -> str:
        if m.group(3):
            return variables.get(m.group(3), "")
        current = variables.get(m.group(1), "")
        if m.group(2) is not None and not current:
            return _expand(m.group(2), variables)
        return current

    return _VAR_RE.sub(sub, value)


def _strip_comment(rest: str) -> str:
    """Drop a trailing comment. Like bash, '#' only starts one at the start of a word."""

    quote: Optional[str] = None
    word_start = False
    i = 0
    while i < len(rest):
        ch = rest[i]
        if quote:
            if ch == quote:
                quote = None
            elif ch == "\\" and quote == '"':
                i += 1
        elif ch in "'\"":
            quote = ch
        elif ch == "\\":
            i += 1
        elif ch == "#" and word_start:
            return rest[:i]
        word_start = quote is None and ch.isspace()
        i += 1
    return rest


def parse_shell_assignments(text: str, *, source: str = "<config>") -> Dict[str, str]:
    """Parse a config.sh made of NAME="value" lines.

    Double-quoted and bare values expand $name, ${name} and ${name:-default}
    from earlier lines; other ${...} forms are rejected. Single-quoted values
    are taken literally.
    """

    variables: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        m = _ASSIGN_RE.match(stripped)
        if not m:
            raise ConfigError(f"{source}:{lineno}: expected NAME=value, got {stripped!r}")
        name, rest = m.group(1), m.group(2)
        try:
            tokens = shlex.split(_strip_comment(rest))
            if len(tokens) > 1:
                raise ValueError(f"unquoted whitespace in value of {name}")
            value = tokens[0] if tokens else ""
            if not rest.startswith("'"):
                value = _expand(value, variables)
        except ValueError as e:
            raise ConfigError(f"{source}:{lineno}: {e}") from e
        variables[name] = value
    return variables


def _raw_from_shell(variables: Mapping[str, str]) -> Dict[str, Any]:
    raw: Dict[str, Any] = {
        "base_dir": variables.get("opencv_lib_base_dir"),
        "bindings_out_dir": variables.get("BINDINGS_OUT_DIR"),
        "versions": {},
        "remote_hosts": {},
    }
    for key, layout in VERSIONS.items():
        entry = {name: variables.get(f"{layout.env_prefix}_{name.upper()}") for name in _VERSION_FIELDS}
        entry["additional_include_dirs"] = variables.get(f"{layout.env_prefix}_ADDITIONAL_INCLUDE_DIRS")
        raw["versions"][key] = {k: v for k, v in entry.items() if v}
    for name, var in REMOTE_HOST_VARS.items():
        if variables.get(var):
            raw["remote_hosts"][name] = variables[var]
    return raw


# --- loading ----------------------------------------------------------------


def _load_yaml(p: Path) -> Any:
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ConfigError("PyYAML is required to read YAML install config") from e

    try:
        return yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"{p}: invalid YAML: {e}") from e


def _is_placeholder(value: Any) -> bool:
    return isinstance(value, str) and bool(_PLACEHOLDER_RE.match(value.strip()))


def validate(raw: Any, *, source: str = "<config>") -> InstallConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"{source}: install config must contain a mapping/object")

    base_dir = raw.get("base_dir")
    if not base_dir or not isinstance(base_dir, str):
        raise ConfigError(f"{source}: base_dir is required")

    versions = raw.get("versions") or {}
    if not isinstance(versions, dict):
        raise ConfigError(f"{source}: versions must be a mapping")
    # YAML reads an unquoted 3.4 key as a float.
    versions = {str(k): v for k, v in versions.items()}
    raw = dict(raw, versions=versions)
    unknown = sorted(set(versions) - set(VERSIONS))
    if unknown:
        raise ConfigError(f"{source}: unknown versions {unknown} (expected one of {list(VERSIONS)})")
    for key, entry in versions.items():
        if entry is not None and not isinstance(entry, dict):
            raise ConfigError(f"{source}: versions.{key} must be a mapping")

    hosts = raw.get("remote_hosts") or {}
    if not isinstance(hosts, dict):
        raise ConfigError(f"{source}: remote_hosts must be a mapping")
    unknown = sorted(set(hosts) - set(REMOTE_HOST_VARS))
    if unknown:
        raise ConfigError(f"{source}: unknown remote_hosts {unknown}")

    placeholders: List[str] = []
    if _is_placeholder(base_dir):
        placeholders.append("base_dir")
    placeholders += [f"remote_hosts.{k}" for k, v in hosts.items() if _is_placeholder(v)]
    if placeholders:
        raise ConfigError(f"{source}: placeholder values not filled in: {', '.join(placeholders)}")

    return InstallConfig(raw=raw)


def load_install_config(path: str) -> InstallConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Install config not found: {path}")

    suffix = p.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    elif suffix == ".sh":
        raw = _raw_from_shell(parse_shell_assignments(p.read_text(encoding="utf-8"), source=str(p)))
    else:
        raise ConfigError(f"{path}: install config must be YAML (.yaml/.yml) or shell (.sh)")

    cfg = validate(raw, source=str(p))
    logger.info("Loaded install config %s (base_dir=%s)", p, cfg.base_dir)
    return cfg


def optional_install_config(path: Optional[str]) -> Optional[InstallConfig]:
    if not path:
        return None
    return load_install_config(path)
