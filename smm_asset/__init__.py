"""Asset client for the Search Management Map (SMM) server."""

__version__ = "0.1.0"

from .asset import SmmAsset, SmmSearch, free_assets, free_waypoints
from .config import SmmConfig, load_config, set_debug
from .connection import MAX_ATTEMPTS, ConnectionState, SmmConnection
from .errors import (
    SmmClientError,
    SmmConfigError,
    SmmConnectionError,
    SmmTimeout,
)
from .http import HttpResult, SmmHttpTransport
from .protocol import AssetCommand, Waypoint

__all__ = [
    "MAX_ATTEMPTS",
    "AssetCommand",
    "ConnectionState",
    "HttpResult",
    "SmmAsset",
    "SmmClientError",
    "SmmConfig",
    "SmmConfigError",
    "SmmConnection",
    "SmmConnectionError",
    "SmmHttpTransport",
    "SmmSearch",
    "SmmTimeout",
    "Waypoint",
    "__version__",
    "free_assets",
    "free_waypoints",
    "load_config",
    "set_debug",
]
