"""Settings source layers.

A provider exposes one layer of configuration as a nested mapping. The
resolver orders providers from lowest to highest precedence:

    DefaultsProvider < TomlFileProvider < EnvProvider < OverrideProvider

Providers never yield `None` as a value; `lookup` returning `None` always
means "this layer does not define the key".
"""

from __future__ import annotations

import copy
import logging
import tomllib
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsError

from printnanny_sync.exceptions import ConfigError

logger = logging.getLogger(__name__)

KeyPath = str | Sequence[str]


def split_key(key: KeyPath) -> tuple[str, ...]:
    """Split a dotted key (`"git.remote"`) or a segment sequence into segments."""
    parts = tuple(key.split(".")) if isinstance(key, str) else tuple(key)
    if not parts or any(not part.strip() for part in parts):
        raise ConfigError(f"Invalid settings key: {key!r}")
    return parts


def format_key(key: KeyPath) -> str:
    return ".".join(split_key(key))


def nest(parts: Sequence[str], value: Any) -> dict[str, Any]:
    """Build `{"a": {"b": value}}` from `("a", "b")`."""
    out: Any = value
    for part in reversed(parts):
        out = {part: out}
    return out


def dig(data: Mapping[str, Any], parts: Sequence[str]) -> Any | None:
    node: Any = data
    for part in parts:
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node


def drop_none(value: Any) -> Any:
    """Recursively remove `None` values from nested mappings."""
    if isinstance(value, Mapping):
        return {k: drop_none(v) for k, v in value.items() if v is not None}
    return value


class SettingsProvider(Protocol):
    """Structural interface of a settings layer."""

    name: str

    def data(self) -> dict[str, Any]:
        ...

    def lookup(self, key: KeyPath) -> Any | None:
        ...


class MappingProvider:
    """A layer backed by a nested mapping; subclasses override `load`."""

    name = "mapping"

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = drop_none(dict(data or {}))

    def load(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def data(self) -> dict[str, Any]:
        return self.load()

    def lookup(self, key: KeyPath) -> Any | None:
        return dig(self.data(), split_key(key))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class DefaultsProvider(MappingProvider):
    """Compiled-in defaults: the schema's field defaults, or an explicit mapping."""

    name = "defaults"

    @classmethod
    def from_model(cls, model: type[BaseModel]) -> DefaultsProvider:
        # model_construct fills defaults without running any settings sources.
        defaults = model.model_construct().model_dump(mode="json", exclude_none=True)
        return cls(defaults)


class TomlFileProvider(MappingProvider):
    """The on-disk settings file. A missing file is an empty layer."""

    name = "file"

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = path

    def load(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.debug("Settings file not found; layer is empty", extra={"path": str(self.path)})
            return {}
        try:
            return tomllib.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse settings file {self.path}: {e}") from e


class EnvProvider(MappingProvider):
    """Process environment, parsed by pydantic-settings' `EnvSettingsSource`.

    With the default prefix, `PRINTNANNY_SETTINGS_CAMERA__WIDTH=640` yields
    `{"camera": {"width": "640"}}`; type coercion happens at validation.
    The environment is read on every `load`.
    """

    name = "env"

    def __init__(
        self,
        model: type[BaseSettings],
        *,
        env_prefix: str | None = None,
        env_nested_delimiter: str | None = None,
    ) -> None:
        super().__init__()
        self._model = model
        self._env_prefix = env_prefix
        self._env_nested_delimiter = env_nested_delimiter

    def load(self) -> dict[str, Any]:
        try:
            source = EnvSettingsSource(
                self._model,
                case_sensitive=False,
                env_prefix=self._env_prefix,
                env_nested_delimiter=self._env_nested_delimiter,
            )
            values = source()
        except SettingsError as e:
            raise ConfigError(f"Invalid environment value: {e}") from e
        return drop_none(values)


class OverrideProvider(MappingProvider):
    """A single key/value supplied at edit time (e.g. `settings set`)."""

    name = "override"

    def __init__(self, key: KeyPath, value: Any) -> None:
        self.key = split_key(key)
        self.value = value
        super().__init__(nest(self.key, value))
