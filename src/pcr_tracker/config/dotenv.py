"""Minimal ``.env`` reader used as a fallback source for environment settings."""

from __future__ import annotations

from pathlib import Path
from typing import Dict

from .errors import ConfigurationError


def _should_skip_line(line: str) -> bool:
    return not line or line.startswith("#") or "=" not in line


def _parse_line(line: str) -> tuple[str, str]:
    if line.startswith("export "):
        line = line[len("export ") :]
    key, raw_value = line.split("=", 1)
    return key.strip(), raw_value.strip().strip("'").strip('"')


def read_dotenv(path: Path) -> Dict[str, str]:
    """
    Load key-value pairs from a .env file.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of values; empty when the file does not exist

    Raises:
        ConfigurationError: If the file exists but cannot be read
    """
    if not path.exists():
        return {}

    values: Dict[str, str] = {}
    try:
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if _should_skip_line(stripped):
                continue
            key, value = _parse_line(stripped)
            if key:
                values[key] = value
    except OSError as exc:
        raise ConfigurationError(f"Failed to load configuration from {path}") from exc

    return values


__all__ = ["read_dotenv"]
