from __future__ import annotations

"""Runtime helpers for working with environment-backed configuration."""


import os
from pathlib import Path
from typing import Sequence

from .dotenv import read_dotenv
from .errors import ConfigurationError

_TRUE_VALUES = {"1", "true", "t", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "f", "no", "n", "off"}

_DOTENV_CANDIDATES = (Path(".env"), Path.home() / ".pcr_tracker.env")

_DOTENV_VALUES: dict[str, str] | None = None


def _dotenv_values() -> dict[str, str]:
    """Merge the candidate .env files; earlier files win."""
    global _DOTENV_VALUES
    if _DOTENV_VALUES is not None:
        return _DOTENV_VALUES

    merged: dict[str, str] = {}
    for path in _DOTENV_CANDIDATES:
        for key, value in read_dotenv(path).items():
            merged.setdefault(key, value)

    _DOTENV_VALUES = merged
    return merged


def reset_dotenv_cache() -> None:
    """Forget cached .env values so the next lookup re-reads the files."""
    global _DOTENV_VALUES
    _DOTENV_VALUES = None


def env_str(
    name: str,
    or_value: str | None = None,
    *,
    required: bool = False,
    strip: bool = True,
) -> str | None:
    """Fetch an environment variable as a string, falling back to .env files."""

    value = os.getenv(name)
    if value is None or value.strip() == "":
        value = _dotenv_values().get(name)

    if value is not None and strip:
        value = value.strip()

    if value is None or value == "":
        if required:
            raise ConfigurationError.missing_value(name, "required environment variable")
        return or_value
    return value


def env_int(name: str, or_value: int | None = None, *, required: bool = False) -> int | None:
    """Fetch an environment variable and coerce it to ``int``."""

    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_value(name, raw, "Expected an integer") from exc


def env_float(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    """Fetch an environment variable and coerce it to ``float``."""

    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError.invalid_value(name, raw, "Expected a number") from exc


def env_bool(name: str, or_value: bool | None = None, *, required: bool = False) -> bool | None:
    """Fetch an environment variable and coerce it to ``bool``."""

    raw = env_str(name, required=required and or_value is None)
    if raw is None:
        return or_value

    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError.unknown_choice(name, raw, _TRUE_VALUES | _FALSE_VALUES)


def env_list(
    name: str,
    *,
    or_value: Sequence[str] | None = None,
    separator: str = ",",
    required: bool = False,
) -> tuple[str, ...] | None:
    """Fetch a delimited list, dropping blanks and duplicates while keeping order."""

    raw = env_str(name)
    if raw is None:
        if required and not or_value:
            raise ConfigurationError.missing_value(name, "required environment variable")
        return None if or_value is None else tuple(or_value)

    items: list[str] = []
    for part in raw.split(separator):
        candidate = part.strip()
        if candidate and candidate not in items:
            items.append(candidate)

    if not items and required:
        raise ConfigurationError.missing_value(name, "must contain at least one value")
    return tuple(items)


def env_seconds(name: str, or_value: float | None = None, *, required: bool = False) -> float | None:
    """Convenience wrapper for durations stored as (possibly fractional) seconds."""

    value = env_float(name, or_value=or_value, required=required)
    if value is None:
        return None
    if value < 0:
        raise ConfigurationError.invalid_value(name, value, "Durations must be non-negative")
    return value


__all__ = [
    "ConfigurationError",
    "env_bool",
    "env_float",
    "env_int",
    "env_list",
    "env_seconds",
    "env_str",
    "reset_dotenv_cache",
]
