"""Error taxonomy for the tile data pipeline."""

from typing import Optional


class TileDeckError(Exception):
    """Base class for all tile-deck errors."""


class ConfigurationError(TileDeckError):
    """Engine wiring defect, e.g. no transform strategy registered for a key.

    The only error allowed to escape the fetch pipeline.
    """

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class StorageError(TileDeckError):
    """Durable key-value store failure (quota, unavailable medium, ...)."""


class TileDataError(TileDeckError):
    """A runtime data fault. Absorbed by the fetch coordinator."""


class TransformError(TileDataError):
    """Payload failed validation, or the transform raised."""

    def __init__(self, message: str, key: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.key = key
        self.cause = cause


class TransportError(TileDataError):
    """Retrieval failed: rejected call, timeout or non-2xx status."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class EmbeddedError(TransportError):
    """2xx payload whose body carries a recognized error field."""

    def __init__(self, message: str, field: str, status: Optional[int] = None):
        super().__init__(message, status=status)
        self.field = field
