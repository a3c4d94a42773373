"""Core tile data synchronization engine."""

from .cache import PersistentCache
from .config import DashboardConfig, EngineSettings, RefreshPolicy, TileConfig
from .engine import TileEngine
from .errors import (
    ConfigurationError,
    EmbeddedError,
    StorageError,
    TileDataError,
    TileDeckError,
    TransformError,
    TransportError,
)
from .fault_log import FaultLog
from .fetcher import FetchCoordinator
from .http_client import HTTPClient
from .models import CacheEntry, CacheMeta, FaultLogEntry, FetchResult, StatusSnapshot, TileStatus
from .refresh_service import TileRefreshService
from .registry import TransformRegistry, TransformStrategy, safe_transform
from .scheduler import RefreshScheduler
from .status import resolve_status
from .storage import JsonFileStore, MemoryStore
from .visibility import ManualVisibilitySource, PageVisibilitySource

__all__ = [
    "CacheEntry",
    "CacheMeta",
    "ConfigurationError",
    "DashboardConfig",
    "EmbeddedError",
    "EngineSettings",
    "FaultLog",
    "FaultLogEntry",
    "FetchCoordinator",
    "FetchResult",
    "HTTPClient",
    "JsonFileStore",
    "ManualVisibilitySource",
    "MemoryStore",
    "PageVisibilitySource",
    "PersistentCache",
    "RefreshPolicy",
    "RefreshScheduler",
    "StatusSnapshot",
    "StorageError",
    "TileConfig",
    "TileDataError",
    "TileDeckError",
    "TileEngine",
    "TileRefreshService",
    "TileStatus",
    "TransformError",
    "TransformRegistry",
    "TransformStrategy",
    "TransportError",
    "resolve_status",
    "safe_transform",
]
