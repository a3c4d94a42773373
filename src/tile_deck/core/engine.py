"""Composition root: one engine per process (or per test)."""

import asyncio
import functools
import logging
from typing import Callable, Dict, List, Optional

from .cache import PersistentCache
from .config import DashboardConfig, EngineSettings, RefreshPolicy, TileConfig
from .fault_log import FaultLog
from .fetcher import FetchCoordinator, Retrieve
from .http_client import HTTPClient
from .loader import load_widget_module, validate_params
from .models import StatusSnapshot
from .refresh_service import TileRefreshService
from .registry import TransformRegistry
from .scheduler import ChangeListener, RefreshScheduler
from .storage import JsonFileStore, KeyValueStore
from .utils import Clock, now_ms
from .visibility import ManualVisibilitySource, PageVisibilitySource

logger = logging.getLogger(__name__)

DashboardListener = Callable[[str, StatusSnapshot], None]


class TileEngine:
    """Wires registry, cache, fault log, fetch coordinator and schedulers together.

    Every collaborator can be injected, so tests and multiple dashboards get
    fully independent engines.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        store: Optional[KeyValueStore] = None,
        visibility: Optional[PageVisibilitySource] = None,
        http_client: Optional[HTTPClient] = None,
        clock: Clock = now_ms,
    ):
        self.settings = settings or EngineSettings()
        self.clock = clock
        self.store = store if store is not None else JsonFileStore(self.settings.storage_dir)
        self.registry = TransformRegistry()
        self.cache = PersistentCache(self.store)
        self.fault_log = FaultLog(
            self.store,
            retention_minutes=self.settings.log_retention_minutes,
            max_entries=self.settings.max_log_entries,
            clock=clock,
        )
        self.coordinator = FetchCoordinator(
            self.registry,
            self.cache,
            self.fault_log,
            timeout_seconds=self.settings.fetch_timeout_seconds,
            embedded_error_fields=self.settings.embedded_error_fields,
            discard_superseded=self.settings.discard_superseded,
            clock=clock,
        )
        self.visibility = visibility or ManualVisibilitySource()
        self.refresh_service = TileRefreshService()
        self.schedulers: Dict[str, RefreshScheduler] = {}
        self._http_client = http_client

    @property
    def http_client(self) -> HTTPClient:
        if self._http_client is None:
            self._http_client = HTTPClient(
                timeout=self.settings.http_timeout_seconds,
                max_attempts=self.settings.http_max_attempts,
            )
        return self._http_client

    def create_scheduler(
        self,
        key: str,
        transform_key: str,
        retrieve: Retrieve,
        policy: Optional[RefreshPolicy] = None,
        *,
        on_change: Optional[ChangeListener] = None,
        source: Optional[str] = None,
        request_url: Optional[str] = None,
    ) -> RefreshScheduler:
        """Create a scheduler for one tile instance. Replaces any scheduler with the same key."""
        previous = self.schedulers.pop(key, None)
        if previous is not None:
            previous.unmount()

        scheduler = RefreshScheduler(
            key,
            transform_key,
            retrieve,
            self.coordinator,
            self.cache,
            policy or RefreshPolicy(),
            self.visibility,
            clock=self.clock,
            on_change=on_change,
            refresh_service=self.refresh_service,
            source=source,
            request_url=request_url,
        )
        self.schedulers[key] = scheduler
        return scheduler

    def create_tile(self, tile: TileConfig, on_change: Optional[ChangeListener] = None) -> RefreshScheduler:
        """Create a scheduler for a configured tile backed by its built-in tile type."""
        module = load_widget_module(tile.type)
        validate_params(module, tile.type, tile.params)
        if tile.type not in self.registry:
            self.registry.register(tile.type, module.strategy)

        url, query = module.build_request(tile.params)
        return self.create_scheduler(
            tile.id,
            tile.type,
            self.http_client.retriever(url, query),
            tile.refresh,
            on_change=on_change,
            source=tile.source or tile.type,
            request_url=url,
        )

    async def mount_dashboard(
        self,
        dashboard: DashboardConfig,
        on_change: Optional[DashboardListener] = None,
    ) -> List[RefreshScheduler]:
        """Create and mount every tile of a dashboard; initial fetches run concurrently."""
        schedulers = [
            self.create_tile(tile, functools.partial(on_change, tile.id) if on_change else None)
            for tile in dashboard.tiles
        ]
        await asyncio.gather(*(s.mount() for s in schedulers))
        return schedulers

    async def refresh_all(self):
        await self.refresh_service.refresh_all()

    def unmount_all(self):
        for scheduler in self.schedulers.values():
            scheduler.unmount()
        self.schedulers = {}

    def reset(self, clear_logs: bool = False):
        """Drop all cached tile data (logout / dashboard reset)."""
        logger.info("Resetting tile cache")
        self.cache.clear_all()
        if clear_logs:
            self.fault_log.clear()

    def close(self):
        self.unmount_all()
        if self._http_client is not None:
            self._http_client.close()
