import os
from typing import Final

from nrpe_bridge import __version__

__all__ = [
    "DEFAULT_NRPE_PORT",
    "NRPE_BRIDGE_CONNECT_TIMEOUT",
    "NRPE_BRIDGE_DEBUG",
    "NRPE_BRIDGE_EXPORT_PATH",
    "NRPE_BRIDGE_IO_TIMEOUT",
    "NRPE_BRIDGE_LISTEN_HOST",
    "NRPE_BRIDGE_LISTEN_PORT",
    "NRPE_BRIDGE_LOG_FORMAT",
    "NRPE_BRIDGE_LOG_HUMAN_OUTPUT",
    "NRPE_BRIDGE_LOG_JSON_FILE",
    "NRPE_BRIDGE_METRICS_PATH",
    "NRPE_BRIDGE_NAME",
    "NRPE_BRIDGE_PROFILES_FILE",
    "NRPE_BRIDGE_PROFILES_PATH",
    "NRPE_BRIDGE_VERSION",
    "SRC_REPO_URL",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
NRPE_BRIDGE_NAME: Final = "nrpe_bridge"
NRPE_BRIDGE_VERSION: str = __version__
SRC_REPO_URL: str = "https://github.com/canonical/nrpe_exporter"

DEFAULT_NRPE_PORT: Final = 5666


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


NRPE_BRIDGE_LISTEN_HOST: str = os.environ.get("NRPE_BRIDGE_LISTEN_HOST", "0.0.0.0")
NRPE_BRIDGE_LISTEN_PORT: int = _env_int("NRPE_BRIDGE_LISTEN_PORT", 9275)
NRPE_BRIDGE_EXPORT_PATH: str = os.environ.get("NRPE_BRIDGE_EXPORT_PATH", "/export")
NRPE_BRIDGE_PROFILES_PATH: str = os.environ.get("NRPE_BRIDGE_PROFILES_PATH", "/profiles")
NRPE_BRIDGE_METRICS_PATH: str = os.environ.get("NRPE_BRIDGE_METRICS_PATH", "/metrics")
_profiles_file = os.environ.get("NRPE_BRIDGE_PROFILES_FILE")
NRPE_BRIDGE_PROFILES_FILE: str | None = _profiles_file if _profiles_file else None

# Timeouts (seconds)
NRPE_BRIDGE_CONNECT_TIMEOUT: float = _env_float("NRPE_BRIDGE_CONNECT_TIMEOUT", 5.0)
NRPE_BRIDGE_IO_TIMEOUT: float = _env_float("NRPE_BRIDGE_IO_TIMEOUT", 10.0)

NRPE_BRIDGE_DEBUG = os.environ.get("NRPE_BRIDGE_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
NRPE_BRIDGE_LOG_FORMAT: str = os.environ.get("NRPE_BRIDGE_LOG_FORMAT", "human")  # "json", "human", or "both"
NRPE_BRIDGE_LOG_JSON_FILE: str = os.environ.get("NRPE_BRIDGE_LOG_JSON_FILE", "/var/log/nrpe_bridge.json")
NRPE_BRIDGE_LOG_HUMAN_OUTPUT: str = os.environ.get("NRPE_BRIDGE_LOG_HUMAN_OUTPUT", "stdout")  # "stdout", "stderr", or file path
