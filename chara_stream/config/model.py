from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from chara_stream.core.errors import ConfigError

from .loader import ConfigPaths, load_config


DEFAULT_EDIT_TOOL_NAMES: tuple[str, ...] = ("edit-file", "edit_file")
DEFAULT_INTERRUPTED_MESSAGE = "Tool call was interrupted"

_TRUE_STRINGS = frozenset({"true", "yes", "on", "1"})
_FALSE_STRINGS = frozenset({"false", "no", "off", "0"})


def _as_bool(value: Any, *, path: str) -> bool:
    # Env placeholders expand to strings, so "false" must not become True.
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigError(f"must be a boolean, got {value!r}", path=path)


@dataclass(frozen=True)
class DecoderConfig:
    """Tunables of one decode session.

    edit_tool_names: tool names whose `edits` sub-operations mirror the call status.
    interrupted_message: error text put on tool calls still open when the stream ends.
    filter_thinking_tags: when false, text deltas are passed through verbatim.
    drop_blank_text_segments: drop whitespace-only text segments on finalize.
    log_preview_chars: how much of a skipped line is echoed into the log.
    """

    edit_tool_names: tuple[str, ...] = DEFAULT_EDIT_TOOL_NAMES
    interrupted_message: str = DEFAULT_INTERRUPTED_MESSAGE
    filter_thinking_tags: bool = True
    drop_blank_text_segments: bool = True
    log_level: str = "INFO"
    log_preview_chars: int = 200
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "DecoderConfig":
        """Build from the `decoder:` section of a loaded config mapping."""

        if raw is None:
            return cls()
        if not isinstance(raw, Mapping):
            raise ConfigError("must be a mapping", path="decoder")

        names = raw.get("edit_tool_names", list(DEFAULT_EDIT_TOOL_NAMES))
        if not isinstance(names, list) or not all(isinstance(x, str) and x for x in names):
            raise ConfigError("must be a list of non-empty strings", path="decoder.edit_tool_names")

        message = raw.get("interrupted_message", DEFAULT_INTERRUPTED_MESSAGE)
        if not isinstance(message, str) or not message.strip():
            raise ConfigError("must be a non-empty string", path="decoder.interrupted_message")

        level = str(raw.get("log_level", cls.log_level)).upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigError(f"unsupported level: {level!r}", path="decoder.log_level")

        try:
            preview = int(raw.get("log_preview_chars", cls.log_preview_chars))
        except (TypeError, ValueError) as e:
            raise ConfigError("must be an integer", path="decoder.log_preview_chars") from e
        if preview < 0:
            raise ConfigError("must be >= 0", path="decoder.log_preview_chars")

        known = {
            "edit_tool_names",
            "interrupted_message",
            "filter_thinking_tags",
            "drop_blank_text_segments",
            "log_level",
            "log_preview_chars",
        }

        return cls(
            edit_tool_names=tuple(names),
            interrupted_message=message,
            filter_thinking_tags=_as_bool(
                raw.get("filter_thinking_tags", cls.filter_thinking_tags),
                path="decoder.filter_thinking_tags",
            ),
            drop_blank_text_segments=_as_bool(
                raw.get("drop_blank_text_segments", cls.drop_blank_text_segments),
                path="decoder.drop_blank_text_segments",
            ),
            log_level=level,
            log_preview_chars=preview,
            extra={k: v for k, v in raw.items() if k not in known},
        )

    def is_edit_tool(self, tool_name: str) -> bool:
        return tool_name in self.edit_tool_names


def load_decoder_config(paths: ConfigPaths, *, load_dotenv_file: bool = True) -> DecoderConfig:
    """Load YAML file(s) and return the typed `decoder:` section.

    Other top-level sections of the files are ignored, including any
    placeholders they contain.
    """

    raw = load_config(paths, section="decoder", load_dotenv_file=load_dotenv_file)
    return DecoderConfig.from_mapping(raw)
