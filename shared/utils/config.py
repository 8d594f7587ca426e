from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import yaml

PROFILE_KEYS = {
    "library",
    "region",
    "accounts",
    "language",
    "formats",
    "all_services",
    "quick_scan",
    "output_dir",
    "timeout",
}

BOOLEAN_KEYS = ("all_services", "quick_scan")

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off", ""}


def load_yaml(path: str | Path) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text())
    return data if isinstance(data, dict) else {}


def _as_bool(key: str, value: Any, path: Path) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    word = str(value).strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError(f"Scan profile key {key!r} in {path} must be true or false, got {value!r}")


def load_scan_profile(path: str | Path) -> Dict[str, Any]:
    """Load a YAML scan profile, keeping only recognised keys.

    Raises ValueError when the file is missing, is not valid YAML, or names
    unknown keys.
    """
    path = Path(path)
    if not path.exists():
        raise ValueError(f"Scan profile not found: {path}")
    try:
        profile = load_yaml(path)
    except yaml.YAMLError as exc:
        raise ValueError(f"Scan profile {path} is not valid YAML: {exc}") from exc
    unknown = sorted(set(profile) - PROFILE_KEYS)
    if unknown:
        raise ValueError(f"Unknown scan profile keys in {path}: {', '.join(unknown)}")

    accounts = profile.get("accounts")
    if accounts is not None:
        if not isinstance(accounts, list):
            accounts = [accounts]
        profile["accounts"] = [int(account) for account in accounts]

    formats = profile.get("formats")
    if isinstance(formats, str):
        profile["formats"] = [formats]

    for key in BOOLEAN_KEYS:
        if key in profile:
            profile[key] = _as_bool(key, profile[key], path)
    return profile
