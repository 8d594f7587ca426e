"""Environment lookups shared by config.settings and the terminal UI."""
from __future__ import annotations

import os


# Placeholder values some .env templates and CI systems leave behind.
UNSET_SENTINELS = {
    "",
    "none",
    "not_available",
    "n/a",
    "na",
    "null",
    "undefined",
}


def env_value(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip()
    if value.lower() in UNSET_SENTINELS:
        return default
    return value


def env_float(name: str, default: float) -> float:
    """Read a positive number of seconds; raises ValueError naming the variable."""
    value = env_value(name)
    if value is None:
        return default
    try:
        number = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{name} must be greater than zero, got {value!r}")
    return number
