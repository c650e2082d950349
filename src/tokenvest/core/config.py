"""
tokenvest Configuration

All settings come from environment variables (TOKENVEST_*) and are read once
at import time. Reload the module to pick up changes.
"""

from __future__ import annotations

import logging
import os
from enum import Enum

logger = logging.getLogger(__name__)


class NetworkType(Enum):
    TESTNET = "testnet"
    MAINNET = "mainnet"


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _get_int(env_var: str, default: int, minimum: int | None = None) -> int:
    raw = os.getenv(env_var, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{env_var} must be an integer, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigurationError(f"{env_var} must be >= {minimum}, got {value}")
    return value


def _get_network(env_var: str) -> NetworkType:
    raw = os.getenv(env_var, NetworkType.TESTNET.value).strip().lower()
    try:
        return NetworkType(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{env_var} must be one of {[n.value for n in NetworkType]}, got {raw!r}"
        ) from exc


NETWORK = _get_network("TOKENVEST_NETWORK")  # Default to testnet for safety

ENVIRONMENT = os.getenv("TOKENVEST_ENVIRONMENT", "development").strip() or "development"
LOG_LEVEL = os.getenv("TOKENVEST_LOG_LEVEL", "WARNING").strip().upper() or "WARNING"
if LOG_LEVEL not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
    raise ConfigurationError(f"TOKENVEST_LOG_LEVEL is not a logging level: {LOG_LEVEL!r}")
LOG_FILE = os.getenv("TOKENVEST_LOG_FILE", "").strip() or None

DATA_DIR = os.path.expanduser(os.getenv("TOKENVEST_DATA_DIR", os.path.join("~", ".tokenvest")))
STATE_PATH = os.path.expanduser(
    os.getenv("TOKENVEST_STATE_PATH", os.path.join(DATA_DIR, "ledger_state.json"))
)

# Default window length (in progress ticks) used when deploy gets no --end
DEFAULT_WINDOW_LENGTH = _get_int("TOKENVEST_DEFAULT_WINDOW_LENGTH", 1000, minimum=1)
TOKEN_DECIMALS = _get_int("TOKENVEST_TOKEN_DECIMALS", 18, minimum=0)
if TOKEN_DECIMALS > 18:
    raise ConfigurationError("TOKENVEST_TOKEN_DECIMALS cannot exceed 18")

if NETWORK is NetworkType.MAINNET and ENVIRONMENT == "development":
    logger.warning(
        "TOKENVEST_NETWORK is mainnet but TOKENVEST_ENVIRONMENT is development",
        extra={"event": "config.environment_mismatch"},
    )
