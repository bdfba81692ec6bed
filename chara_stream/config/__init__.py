"""Configuration loading and schema.

- YAML configuration, `decoder:` section (see configs/decoder.yaml)
- `${ENV_VAR}` (required) and `${ENV_VAR:-fallback}` placeholders
"""

from __future__ import annotations

from chara_stream.core.errors import ConfigError
from chara_stream.config.loader import load_config
from chara_stream.config.model import DecoderConfig, load_decoder_config

__all__ = ["ConfigError", "DecoderConfig", "load_config", "load_decoder_config"]
