"""Layered settings resolution.

The resolver folds an ordered list of providers, highest precedence first:
a key defined by a later layer always wins over the same key in an earlier
layer, nested tables merge key by key.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings

from printnanny_sync.core.config import SyncConfig
from printnanny_sync.exceptions import ConfigError, KeyNotFound
from printnanny_sync.settings.models import PrintNannySettings
from printnanny_sync.settings.providers import (
    DefaultsProvider,
    EnvProvider,
    KeyPath,
    OverrideProvider,
    SettingsProvider,
    TomlFileProvider,
    format_key,
    split_key,
)

logger = logging.getLogger(__name__)

SettingsT = TypeVar("SettingsT", bound=BaseSettings)


def _fill_missing(target: dict[str, Any], lower: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a lower-precedence mapping into `target` without overwriting."""
    for key, value in lower.items():
        if key not in target:
            target[key] = value
            continue
        existing = target[key]
        if isinstance(existing, dict) and isinstance(value, Mapping):
            _fill_missing(existing, value)
    return target


def _schema_field(model: type[BaseModel], parts: Sequence[str]) -> FieldInfo | None:
    """Return the schema field of a key, or None when the key is outside the schema."""
    current: Any = model
    field: FieldInfo | None = None
    for part in parts:
        if not (isinstance(current, type) and issubclass(current, BaseModel)):
            return None
        field = current.model_fields.get(part)
        if field is None:
            return None
        current = field.annotation
    return field


def _field_adapter(field: FieldInfo) -> TypeAdapter[Any]:
    # Constraints such as gt=0 live in the field metadata, not the annotation.
    if field.metadata:
        return TypeAdapter(Annotated[(field.annotation, *field.metadata)])
    return TypeAdapter(field.annotation)


class SettingsResolver(Generic[SettingsT]):
    """Merge settings layers into one effective settings object.

    Example:
        resolver = SettingsResolver.from_config(SyncConfig())
        settings = resolver.resolve()
        remote = resolver.find_value("git.remote")
    """

    def __init__(self, providers: Sequence[SettingsProvider], model: type[SettingsT]) -> None:
        self._providers: tuple[SettingsProvider, ...] = tuple(providers)
        self._model = model

    @classmethod
    def from_config(cls, config: SyncConfig) -> SettingsResolver[PrintNannySettings]:
        """Standard chain: schema defaults < settings file < environment."""

        return SettingsResolver(
            [
                DefaultsProvider.from_model(PrintNannySettings),
                TomlFileProvider(config.settings_file),
                EnvProvider(PrintNannySettings),
            ],
            model=PrintNannySettings,
        )

    @property
    def providers(self) -> tuple[SettingsProvider, ...]:
        """Layers in precedence order (lowest first)."""

        return self._providers

    @property
    def model(self) -> type[SettingsT]:
        return self._model

    def merged(self) -> dict[str, Any]:
        """Raw merged mapping of every layer, before validation."""

        result: dict[str, Any] = {}
        for provider in reversed(self._providers):
            _fill_missing(result, provider.data())
        return result

    def resolve(self) -> SettingsT:
        """Validate the merged layers into the settings model.

        Raises:
            ConfigError: A layer is malformed or the merged result is invalid.
        """
        merged = self.merged()
        try:
            settings = self._model.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid settings: {e}") from e
        logger.debug(
            "Resolved settings",
            extra={"layers": [p.name for p in self._providers]},
        )
        return settings

    def find_value(self, key: KeyPath) -> Any:
        """Look up one key across layers without validating the whole model.

        The value is validated against the schema field of `key` (type and
        constraints, when the key is part of the schema) and returned in its
        JSON-compatible form, so it equals `resolve().model_dump(mode="json")`
        at the same key.

        Raises:
            KeyNotFound: No layer defines `key`.
            ConfigError: A layer is malformed or the value is invalid for the key.
        """
        parts = split_key(key)

        hits: list[Any] = []
        for provider in reversed(self._providers):
            value = provider.lookup(parts)
            if value is None:
                continue
            hits.append(value)
            if not isinstance(value, Mapping):
                break

        if not hits:
            raise KeyNotFound(format_key(parts))

        raw: Any = hits[0]
        if isinstance(raw, Mapping):
            raw = {}
            for hit in hits:
                if not isinstance(hit, Mapping):
                    break
                _fill_missing(raw, hit)

        field = _schema_field(self._model, parts)
        if field is None:
            return raw

        adapter = _field_adapter(field)
        try:
            value = adapter.validate_python(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid value for {format_key(parts)}: {e}") from e
        return adapter.dump_python(value, mode="json")

    def overridden(self, key: KeyPath, value: Any) -> SettingsResolver[SettingsT]:
        """A new resolver with one extra top-precedence layer holding `key = value`.

        Raises:
            KeyNotFound: `key` is not part of the settings schema, so the
                override would be dropped on validation.
        """
        parts = split_key(key)
        if _schema_field(self._model, parts) is None:
            raise KeyNotFound(format_key(parts))
        return SettingsResolver(
            [*self._providers, OverrideProvider(parts, value)], model=self._model
        )

    def with_override(self, key: KeyPath, value: Any) -> SettingsT:
        """Resolve as if `key = value` were set in a top-precedence layer.

        No persisted layer is modified.
        """
        return self.overridden(key, value).resolve()
