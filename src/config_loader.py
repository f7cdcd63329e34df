"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import math
import tomllib
from dataclasses import fields
from enum import Enum
from typing import Any, Dict

from .datatypes import (
    AppConfig,
    CompositorConfig,
    OutputConfig,
    SourceConfig,
    StreamConfig,
)


class ConfigError(ValueError):
    """Raised when the configuration file is malformed or fails validation."""


_KNOWN_SECTIONS = ("compositor", "stream", "source", "output")


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_enum(value: Any, dotted_key: str, enum_type: type[Enum]) -> Enum:
    """Return an enum member, coercing string values case-insensitively."""

    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        for member in enum_type:
            member_value = str(member.value).lower()
            if normalized == member_value:
                return member
    raise ConfigError(
        f"{dotted_key} must be one of: {', '.join(str(member.value) for member in enum_type)}"
    )


def _sanitize_section(raw: dict[str, Any], name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls`` with cleaned booleans and enums.

    Raises:
        ConfigError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    bool_fields = {field_name for field_name, field in cls_fields.items() if field.type is bool}
    enum_fields = {
        field_name: field.type
        for field_name, field in cls_fields.items()
        if isinstance(field.type, type) and issubclass(field.type, Enum)
    }
    for key, value in raw.items():
        if key in bool_fields:
            cleaned[key] = _coerce_bool(value, f"{name}.{key}")
        elif key in enum_fields:
            cleaned[key] = _coerce_enum(value, f"{name}.{key}", enum_fields[key])
        else:
            cleaned[key] = value
    try:
        return cls(**cleaned)
    except TypeError as exc:
        raise ConfigError(f"Invalid keys in [{name}]: {exc}") from exc


def _normalize_float(value: Any, dotted_key: str) -> float:
    """Return ``value`` as a finite float, raising ConfigError otherwise."""

    if isinstance(value, bool):
        raise ConfigError(f"{dotted_key} must be a number")
    try:
        numeric = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{dotted_key} must be a number") from exc
    if not math.isfinite(numeric):
        raise ConfigError(f"{dotted_key} must be a finite number")
    return numeric


def _normalize_int(value: Any, dotted_key: str, *, minimum: int = 0) -> int:
    """Return ``value`` as an int no smaller than ``minimum``."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{dotted_key} must be an integer")
    if value < minimum:
        raise ConfigError(f"{dotted_key} must be >= {minimum}")
    return value


def load_config(path: str) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted), coerces and validates
    every section, and returns an AppConfig. Sections that are absent keep their defaults.

    Returns:
        AppConfig: The validated application configuration.

    Raises:
        ConfigError: If the file is not UTF-8, TOML parsing fails, an unknown section or key is
            present, or any validation rule is violated.
    """

    with open(path, "rb") as handle:
        raw_bytes = handle.read()
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse TOML: {exc}") from exc

    unknown = sorted(set(raw) - set(_KNOWN_SECTIONS))
    if unknown:
        raise ConfigError(f"Unknown configuration section(s): {', '.join(unknown)}")

    app = AppConfig(
        compositor=_sanitize_section(raw.get("compositor", {}), "compositor", CompositorConfig),
        stream=_sanitize_section(raw.get("stream", {}), "stream", StreamConfig),
        source=_sanitize_section(raw.get("source", {}), "source", SourceConfig),
        output=_sanitize_section(raw.get("output", {}), "output", OutputConfig),
    )

    app.stream.max_frames = _normalize_int(app.stream.max_frames, "stream.max_frames")

    app.source.reacquire_retries = _normalize_int(
        app.source.reacquire_retries, "source.reacquire_retries"
    )
    app.source.acquire_timeout_ms = _normalize_int(
        app.source.acquire_timeout_ms, "source.acquire_timeout_ms"
    )
    app.source.initial_backoff = _normalize_float(app.source.initial_backoff, "source.initial_backoff")
    if app.source.initial_backoff <= 0:
        raise ConfigError("source.initial_backoff must be > 0")
    app.source.max_backoff = _normalize_float(app.source.max_backoff, "source.max_backoff")
    if app.source.max_backoff < app.source.initial_backoff:
        raise ConfigError("source.max_backoff must be >= source.initial_backoff")

    if not isinstance(app.output.path, str) or not app.output.path.strip():
        raise ConfigError("output.path must be a non-empty string")

    return app
