"""Config file loader (YAML + strict env expansion).

- A config path is either a single file or a directory of files.
- Directory entries are processed in lexicographic filename order, each one
  merged into the accumulated config.
- `${ENV_VAR}` inside string values is expanded; missing or empty variables
  are errors.
"""

from __future__ import annotations

import os
import re
import typing
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from replicator.config.model import SECTION_TYPES, AgentConfig
from replicator.core.errors import ConfigError


_ENV_PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")

CONFIG_SUFFIXES = frozenset({".yaml", ".yml", ".json"})

_TRUE = frozenset({"true", "1", "yes", "on"})
_FALSE = frozenset({"false", "0", "no", "off"})

# Credentials must be quoted: YAML reads unquoted 0123 as octal and 1e10 as a float.
_QUOTED_ONLY_KEYS = frozenset({"consul_token", "pagerduty_service_key"})


def parse_bool(text: str) -> bool:
    """Parse true/false style text. Raises ValueError on anything else."""

    lowered = text.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {text!r}")


@dataclass(frozen=True, slots=True)
class _UnresolvedEnvRef:
    """Tracks an unresolved ${ENV_VAR} reference for better error messages."""

    var_name: str
    source_file: str
    key_path: str
    reason: str  # "missing" | "empty"


def _load_yaml(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    return yaml.safe_load(text)


def _expand_env_in_obj(
    obj: Any,
    *,
    source_file: str,
    key_path: str,
    unresolved: list[_UnresolvedEnvRef],
) -> Any:
    if isinstance(obj, str):
        def repl(match: re.Match[str]) -> str:
            name = match.group(1)
            value = os.getenv(name)
            if value is None or value == "":
                unresolved.append(
                    _UnresolvedEnvRef(
                        var_name=name,
                        source_file=source_file,
                        key_path=key_path,
                        reason="missing" if value is None else "empty",
                    )
                )
                return match.group(0)
            return value

        return _ENV_PLACEHOLDER_RE.sub(repl, obj)

    if isinstance(obj, Mapping):
        out: dict[str, Any] = {}
        for k, v in obj.items():
            child_path = f"{key_path}.{k}" if key_path else str(k)
            out[str(k)] = _expand_env_in_obj(
                v,
                source_file=source_file,
                key_path=child_path,
                unresolved=unresolved,
            )
        return out

    if isinstance(obj, list):
        return [
            _expand_env_in_obj(
                v,
                source_file=source_file,
                key_path=f"{key_path}[{i}]",
                unresolved=unresolved,
            )
            for i, v in enumerate(obj)
        ]

    return obj


def _coerce(value: Any, typ: type, *, key_path: str, quoted_only: bool = False) -> Any:
    if typ is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return parse_bool(value)
            except ValueError as e:
                raise ConfigError(f"expected a boolean, got {value!r}", path=key_path) from e
        raise ConfigError(f"expected a boolean, got {value!r}", path=key_path)

    if typ is str:
        if quoted_only and not isinstance(value, str):
            raise ConfigError(
                f"expected a quoted string, got a YAML {type(value).__name__}", path=key_path
            )
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            return str(value)
        raise ConfigError(f"expected a string, got {value!r}", path=key_path)

    # int / float
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ConfigError(f"expected a number, got {value!r}", path=key_path)
    if typ is int and isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"expected an integer, got {value!r}", path=key_path)
    try:
        return typ(value)
    except ValueError as e:
        raise ConfigError(f"expected {typ.__name__}, got {value!r}", path=key_path) from e


def _build(cls: type, raw: Mapping[str, Any], *, key_path: str) -> Any:
    hints = typing.get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}

    for key, value in raw.items():
        child_path = f"{key_path}.{key}" if key_path else str(key)
        if key not in known:
            raise ConfigError("unknown configuration key", path=child_path)
        if value is None:
            continue

        section_cls = SECTION_TYPES.get(key) if cls is AgentConfig else None
        if section_cls is not None:
            if not isinstance(value, Mapping):
                raise ConfigError("section must be a mapping", path=child_path)
            kwargs[key] = _build(section_cls, value, key_path=child_path)
        else:
            kwargs[key] = _coerce(
                value,
                hints[key],
                key_path=child_path,
                quoted_only=key in _QUOTED_ONLY_KEYS,
            )

    return cls(**kwargs)


def parse_config(raw: Any, *, source: str = "<memory>") -> AgentConfig:
    """Turn a parsed document into an AgentConfig.

    Unset keys keep their zero value so the result merges cleanly onto a
    base config.
    """

    if raw is None:
        return AgentConfig()
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Top-level YAML must be a mapping/dict: {source}")

    unresolved: list[_UnresolvedEnvRef] = []
    expanded = _expand_env_in_obj(raw, source_file=source, key_path="", unresolved=unresolved)

    if unresolved:
        lines: list[str] = ["Unresolved environment variables in config:"]
        for ref in unresolved:
            where = ref.key_path or "<root>"
            lines.append(f"- {ref.var_name} ({ref.reason}) at {where} in {ref.source_file}")
        raise ConfigError("\n".join(lines))

    return _build(AgentConfig, expanded, key_path="")


def load_config_file(path: Path) -> AgentConfig:
    try:
        raw = _load_yaml(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read YAML config: {e}", path=str(path)) from e

    try:
        return parse_config(raw, source=str(path))
    except ConfigError as e:
        raise ConfigError(str(e), path=str(path)) from e


def config_files_in_dir(path: Path) -> list[Path]:
    """Config files directly inside `path`, in lexicographic filename order."""

    return sorted(
        (
            p
            for p in path.iterdir()
            if p.is_file() and not p.name.startswith(".") and p.suffix.lower() in CONFIG_SUFFIXES
        ),
        key=lambda p: p.name,
    )


def load_config_dir(path: Path) -> AgentConfig:
    try:
        files = config_files_in_dir(path)
    except OSError as e:
        raise ConfigError(f"Failed to list config directory: {e}", path=str(path)) from e

    result = AgentConfig()
    for p in files:
        result = result.merge(load_config_file(p))
    return result


def load_config(
    path: str | Path,
    *,
    load_dotenv_file: bool = True,
) -> AgentConfig:
    """Load configuration from a file or a directory of files.

    Args:
        path: A YAML/JSON file, or a directory containing such files.
        load_dotenv_file: Whether to load `.env` from the current working
            directory before expansion.

    Raises:
        ConfigError: If the path is missing, a file is invalid, or env
            expansion is unresolved.
    """

    config_path = Path(path).expanduser()

    if load_dotenv_file:
        # Never overrides variables already set in the process environment.
        load_dotenv(Path.cwd() / ".env", override=False)

    if config_path.is_dir():
        return load_config_dir(config_path)
    if not config_path.exists():
        raise ConfigError("Config path does not exist", path=str(config_path))
    return load_config_file(config_path)
