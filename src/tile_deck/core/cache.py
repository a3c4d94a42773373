"""Write-through cache of per-tile data and request bookkeeping."""

import json
import logging
from typing import Dict, List, Optional

from pydantic import ValidationError

from .errors import StorageError
from .models import CacheEntry
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

TILE_STATE_KEY = "dashboard-tile-state"


class PersistentCache:
    """Keeps the last cache entry of every tile and mirrors it to durable storage.

    The in-memory view is authoritative for the lifetime of the process: a
    failing store is logged and otherwise ignored.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = TILE_STATE_KEY):
        self.store = store
        self.storage_key = storage_key
        self.entries: Dict[str, CacheEntry] = {}
        self._loaded = False

    def load(self):
        """Load entries from the store. Unreadable or invalid entries are skipped."""
        self._loaded = True
        try:
            raw = self.store.get_item(self.storage_key)
        except StorageError as e:
            logger.error("Failed to load tile cache: %s", e)
            return
        if not raw:
            return

        try:
            payload = json.loads(raw)
        except ValueError as e:
            logger.warning("Discarding corrupt tile cache: %s", e)
            return
        if not isinstance(payload, dict):
            logger.warning("Discarding tile cache with unexpected shape: %s", type(payload).__name__)
            return

        for key, value in payload.items():
            try:
                self.entries[key] = CacheEntry.model_validate(value)
            except ValidationError as e:
                logger.warning("Skipping invalid cache entry for %s: %s", key, e)
        logger.debug("Loaded %d cached tile entries", len(self.entries))

    def _ensure_loaded(self):
        if not self._loaded:
            self.load()

    def save(self):
        """Write every entry to the store."""
        payload = {}
        for key, entry in self.entries.items():
            try:
                payload[key] = entry.to_storage()
            except (TypeError, ValueError) as e:
                logger.warning("Not persisting unserializable cache entry for %s: %s", key, e)
        try:
            self.store.set_item(self.storage_key, json.dumps(payload))
        except (StorageError, TypeError, ValueError) as e:
            logger.error("Failed to save tile cache: %s", e)

    def read(self, key: str) -> Optional[CacheEntry]:
        self._ensure_loaded()
        return self.entries.get(key)

    def write(self, key: str, entry: CacheEntry):
        """Replace the entry for ``key`` and persist."""
        self._ensure_loaded()
        self.entries[key] = entry
        self.save()

    def clear(self, key: str):
        self._ensure_loaded()
        if self.entries.pop(key, None) is not None:
            self.save()

    def clear_all(self):
        """Drop every entry, e.g. on logout or dashboard reset."""
        self.entries = {}
        self._loaded = True
        try:
            self.store.remove_item(self.storage_key)
        except StorageError as e:
            logger.error("Failed to clear tile cache: %s", e)

    def keys(self) -> List[str]:
        self._ensure_loaded()
        return sorted(self.entries)
