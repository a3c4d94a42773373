"""Durable key-value stores backing the tile cache and the fault log."""

from pathlib import Path
from typing import Dict, Optional, Protocol

from .errors import StorageError


class KeyValueStore(Protocol):
    """String-to-string durable store, one per origin."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store. Used in tests and for throwaway engines."""

    def __init__(self):
        self.items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str):
        self.items[key] = value

    def remove_item(self, key: str):
        self.items.pop(key, None)


class JsonFileStore:
    """Stores each key as ``<key>.json`` inside a directory."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def set_item(self, key: str, value: str):
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                f.write(value)
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def remove_item(self, key: str):
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {path}: {e}") from e
