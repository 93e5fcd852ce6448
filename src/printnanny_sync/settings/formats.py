"""Serialization of settings for storage and display.

The canonical (stored, committed) form is TOML. JSON and TOML are available
for display; INI and YAML are recognized names without a serializer.
"""

from __future__ import annotations

import json
import tomllib
from enum import Enum
from typing import Any, TypeVar

import tomli_w
from pydantic import BaseModel, ValidationError

from printnanny_sync.exceptions import ConfigError, UnsupportedFormatError
from printnanny_sync.settings.providers import KeyPath, drop_none, split_key

ModelT = TypeVar("ModelT", bound=BaseModel)


class SettingsFormat(str, Enum):
    JSON = "json"
    TOML = "toml"
    INI = "ini"
    YAML = "yaml"

    def __str__(self) -> str:
        return self.value


def to_canonical(settings: BaseModel) -> str:
    """Serialize settings to the canonical TOML text stored on disk."""

    return tomli_w.dumps(settings.model_dump(mode="json", exclude_none=True))


def from_canonical(text: str, model: type[ModelT]) -> ModelT:
    """Parse canonical TOML text back into `model`.

    Raises:
        ConfigError: The text is not TOML or does not match the schema.
    """
    try:
        return model.model_validate(tomllib.loads(text))
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise ConfigError(f"Invalid canonical settings: {e}") from e


def dumps(value: Any, fmt: SettingsFormat | str, *, key: KeyPath | None = None) -> str:
    """Render a settings object or a single looked-up value for display.

    TOML documents must be tables, so a scalar looked up by `key` is rendered
    as `<last key segment> = <value>`.

    Raises:
        UnsupportedFormatError: `fmt` is INI or YAML.
    """
    fmt = SettingsFormat(fmt)
    data = value.model_dump(mode="json") if isinstance(value, BaseModel) else value

    if fmt is SettingsFormat.JSON:
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

    if fmt is SettingsFormat.TOML:
        if not isinstance(data, dict):
            name = split_key(key)[-1] if key is not None else "value"
            data = {name: data}
        return tomli_w.dumps(drop_none(data))

    raise UnsupportedFormatError(f"Settings format {fmt.value!r} is not implemented")
