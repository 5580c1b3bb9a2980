from __future__ import annotations

"""Exception types for configuration handling."""


class ConfigurationError(RuntimeError):
    """Raised when configuration values are missing or malformed."""

    @classmethod
    def missing_value(cls, param_name: str, context: str = "") -> "ConfigurationError":
        """Create error for missing value."""
        msg = f"{param_name} is missing or empty"
        if context:
            msg += f": {context}"
        return cls(msg)

    @classmethod
    def invalid_value(cls, param_name: str, value, reason: str = "") -> "ConfigurationError":
        """Create error for invalid value."""
        msg = f"Invalid value for {param_name}: {value!r}"
        if reason:
            msg += f". {reason}"
        return cls(msg)

    @classmethod
    def invalid_range(cls, param_name: str, low, high) -> "ConfigurationError":
        """Create error for an inverted min/max pair."""
        return cls(f"{param_name} range is inverted (min={low!r}, max={high!r})")

    @classmethod
    def unknown_choice(cls, param_name: str, value: str, choices) -> "ConfigurationError":
        """Create error for a value outside an enumerated set."""
        allowed = ", ".join(sorted(choices))
        return cls(f"{param_name} must be one of [{allowed}] (got {value!r})")


__all__ = ["ConfigurationError"]
