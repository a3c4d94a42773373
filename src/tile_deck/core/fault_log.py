"""Append-only log of API faults, pruned by a retention window."""

import json
import logging
from typing import Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from .errors import StorageError
from .models import FaultLogEntry, LogLevel
from .storage import KeyValueStore
from .utils import Clock, generate_id, minutes_to_ms, now_ms

logger = logging.getLogger(__name__)

LOGS_KEY = "dashboard_api_logs"
DEFAULT_RETENTION_MINUTES = 60
DEFAULT_MAX_ENTRIES = 1000

Listener = Callable[[], None]


class FaultLog:
    """Newest-first list of fault entries, mirrored to durable storage."""

    def __init__(
        self,
        store: KeyValueStore,
        retention_minutes: int = DEFAULT_RETENTION_MINUTES,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = now_ms,
        storage_key: str = LOGS_KEY,
    ):
        self.store = store
        self.retention_ms = minutes_to_ms(retention_minutes)
        self.max_entries = max_entries
        self.clock = clock
        self.storage_key = storage_key
        self._entries: List[FaultLogEntry] = []
        self._listeners: List[Listener] = []
        self._loaded = False

    def load(self):
        self._loaded = True
        try:
            raw = self.store.get_item(self.storage_key)
        except StorageError as e:
            logger.error("Failed to load fault log: %s", e)
            return
        if not raw:
            return
        try:
            payload = json.loads(raw)
        except ValueError as e:
            logger.warning("Discarding corrupt fault log: %s", e)
            return

        for item in payload if isinstance(payload, list) else []:
            try:
                self._entries.append(FaultLogEntry.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid fault log entry: %s", e)

    def _ensure_loaded(self):
        if not self._loaded:
            self.load()

    def _prune(self):
        threshold = self.clock() - self.retention_ms
        self._entries = [e for e in self._entries if e.timestamp >= threshold]

    def _save(self):
        try:
            if self._entries:
                payload = [e.to_storage() for e in self._entries]
                self.store.set_item(self.storage_key, json.dumps(payload))
            else:
                self.store.remove_item(self.storage_key)
        except StorageError as e:
            logger.error("Failed to save fault log: %s", e)

    def _notify(self):
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Fault log listener failed")

    def add(
        self,
        level: Union[LogLevel, str],
        source: str,
        reason: str,
        details: Optional[Dict[str, Union[str, int, float]]] = None,
    ) -> FaultLogEntry:
        """Append an entry and return it."""
        self._ensure_loaded()
        entry = FaultLogEntry(
            id=generate_id("log", clock=self.clock),
            timestamp=self.clock(),
            level=LogLevel(level),
            source=source,
            reason=reason,
            details=details or {},
        )
        self._entries.insert(0, entry)
        self._prune()
        del self._entries[self.max_entries:]
        self._save()
        self._notify()
        return entry

    def entries(self) -> List[FaultLogEntry]:
        """Entries within the retention window, newest first."""
        self._ensure_loaded()
        self._prune()
        return list(self._entries)

    def remove(self, entry_id: str) -> bool:
        self._ensure_loaded()
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                del self._entries[i]
                self._save()
                self._notify()
                return True
        return False

    def clear(self):
        self._entries = []
        self._loaded = True
        self._save()
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
