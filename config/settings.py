"""
Runtime configuration for the library inventory scanner.

Reads from environment variables with sensible defaults.
Credentials, region and request knobs live here; CLI flags and YAML
scan profiles override them per run.

For domain constants (regions, report columns, exit codes), see config.constants.
For secrets and API keys, see .env.
"""
from __future__ import annotations

from dotenv import load_dotenv

from shared.utils.env import env_float, env_value

load_dotenv()


# =============================================================================
# CREDENTIALS
# =============================================================================

# New Relic *User* API key. Prompted for when unset and stdin is a terminal.
API_KEY: str | None = env_value("NEW_RELIC_API_KEY")


# =============================================================================
# SCAN TARGET
# =============================================================================

DEFAULT_REGION: str = (env_value("LIBSCAN_REGION", "us") or "us").lower()

DEFAULT_LIBRARY: str = env_value("LIBSCAN_LIBRARY", "log4j-core") or "log4j-core"

# Optional language clause for the entity search, e.g. "java"
ENTITY_LANGUAGE: str | None = env_value("LIBSCAN_ENTITY_LANGUAGE")


# =============================================================================
# TRANSPORT
# =============================================================================

# Per-request deadline in seconds
REQUEST_TIMEOUT: float = env_float("LIBSCAN_REQUEST_TIMEOUT", 60.0)

REQUESTING_SERVICE: str = env_value("LIBSCAN_REQUESTING_SERVICE", "nr-libscan") or "nr-libscan"


# =============================================================================
# OUTPUT
# =============================================================================

OUTPUT_DIR: str = env_value("LIBSCAN_OUTPUT_DIR", ".") or "."


# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL: str = env_value("LIBSCAN_LOG_LEVEL", "INFO") or "INFO"
