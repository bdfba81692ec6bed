"""YAML config loading for the decoder.

The decoder usually lives inside a host application whose YAML carries other
sections too. Only the requested section is env-expanded and returned, so an
unset variable used elsewhere in the host's file does not break decoding.

Placeholders: `${NAME}` (required, must be set and non-empty) and
`${NAME:-fallback}` (fallback used when NAME is unset or empty).
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Mapping, Sequence

import yaml
from dotenv import load_dotenv

from chara_stream.core.errors import ConfigError


_PLACEHOLDER_RE = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?::-(?P<fallback>[^}]*))?\}")

ConfigPaths = Path | str | Sequence[Path | str]


def _as_path_list(paths: ConfigPaths) -> list[Path]:
    if isinstance(paths, (str, Path)):
        return [Path(paths)]
    out = [Path(p) for p in paths]
    if not out:
        raise ConfigError("No config files provided")
    return out


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError("Config file does not exist", path=str(path))
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read YAML config: {e}", path=str(path)) from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError("Top-level YAML must be a mapping", path=str(path))
    return dict(data)


def _overlay(base: dict[str, Any], top: Mapping[str, Any]) -> dict[str, Any]:
    """Later files win; nested mappings merge key by key, lists are replaced."""

    merged = dict(base)
    for key, value in top.items():
        below = merged.get(key)
        if isinstance(value, Mapping) and isinstance(below, Mapping):
            merged[key] = _overlay(dict(below), value)
        else:
            merged[key] = value
    return merged


class _EnvExpander:
    """Expand placeholders recursively, collecting every unresolved one."""

    def __init__(self, sources: str) -> None:
        self._sources = sources
        self.problems: list[str] = []

    def expand(self, value: Any, where: str) -> Any:
        if isinstance(value, str):
            return _PLACEHOLDER_RE.sub(lambda m: self._resolve(m, where), value)
        if isinstance(value, Mapping):
            return {str(k): self.expand(v, f"{where}.{k}" if where else str(k)) for k, v in value.items()}
        if isinstance(value, list):
            return [self.expand(v, f"{where}[{i}]") for i, v in enumerate(value)]
        return value

    def _resolve(self, match: re.Match[str], where: str) -> str:
        name = match.group("name")
        current = os.environ.get(name)
        if current:
            return current
        fallback = match.group("fallback")
        if fallback is not None:
            return fallback
        reason = "missing" if current is None else "empty"
        self.problems.append(f"- {name} ({reason}) at {where or '<root>'} in {self._sources}")
        return match.group(0)


def load_config(
    paths: ConfigPaths,
    *,
    section: str | None = None,
    load_dotenv_file: bool = True,
    dotenv_path: Path | None = None,
) -> dict[str, Any]:
    """Read, merge and env-expand YAML config.

    Args:
        paths: one file or several; later files override earlier ones.
        section: return (and expand) only this top-level key; a missing
            section yields `{}`.
        load_dotenv_file: load `dotenv_path` (default `./.env`) first, without
            overriding variables already set.

    Raises:
        ConfigError: missing file, invalid YAML, a section that is not a
            mapping, or unresolved placeholders (all listed in one message).
    """

    files = _as_path_list(paths)
    if load_dotenv_file:
        load_dotenv(dotenv_path or Path.cwd() / ".env", override=False)

    merged: dict[str, Any] = {}
    for path in files:
        merged = _overlay(merged, _read_mapping(path))

    root = ""
    if section is not None:
        picked = merged.get(section) or {}
        if not isinstance(picked, Mapping):
            raise ConfigError("must be a mapping", path=section)
        merged, root = dict(picked), section

    expander = _EnvExpander(",".join(str(p) for p in files))
    expanded = expander.expand(merged, root)
    if expander.problems:
        raise ConfigError("\n".join(["Unresolved environment variables in config:", *expander.problems]))
    return expanded
