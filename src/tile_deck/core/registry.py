"""Transform strategies and the registry that dispatches them by tile type."""

import json
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from .errors import ConfigurationError, TransformError
from .models import DomainRecord


class TransformStrategy(NamedTuple):
    """Validation and transformation pair for one tile type.

    ``validate`` is a cheap shape check on the raw payload; ``transform`` maps a
    valid payload to the tile's domain record and may raise on bad data.
    """

    validate: Callable[[Any], bool]
    transform: Callable[[Any], DomainRecord]


class TransformRegistry:
    """Holds one transform strategy per tile-type key."""

    def __init__(self):
        self._strategies: Dict[str, TransformStrategy] = {}

    def register(self, key: str, strategy: TransformStrategy):
        """Register ``strategy`` for ``key``, replacing any earlier registration."""
        self._strategies[key] = strategy

    def resolve(self, key: str) -> Optional[TransformStrategy]:
        return self._strategies.get(key)

    def require(self, key: str) -> TransformStrategy:
        """Resolve ``key`` or fail with a ConfigurationError naming it."""
        strategy = self._strategies.get(key)
        if strategy is None:
            raise ConfigurationError(f"No transform strategy registered for '{key}'", key=key)
        return strategy

    def keys(self) -> List[str]:
        return sorted(self._strategies)

    def __contains__(self, key: str) -> bool:
        return key in self._strategies


def safe_transform(strategy: TransformStrategy, raw: Any, key: str) -> DomainRecord:
    """Validate and transform ``raw`` with ``strategy``.

    Args:
        strategy: Strategy to apply
        raw: Decoded payload from the data source
        key: Tile-type key, carried on the error for fault logging

    Returns:
        The domain record produced by ``strategy.transform``

    Raises:
        TransformError: if validation fails, either callable raises, or the
            transform produces no record or one that is not a JSON-serializable
            dict. The original exception is chained.
    """
    try:
        valid = strategy.validate(raw)
    except Exception as e:
        raise TransformError(f"Validation failed for '{key}': {e}", key=key, cause=e) from e
    if not valid:
        raise TransformError(f"Invalid payload for '{key}'", key=key)

    try:
        record = strategy.transform(raw)
    except Exception as e:
        raise TransformError(f"Transform failed for '{key}': {e}", key=key, cause=e) from e
    if record is None:
        raise TransformError(f"Transform produced no record for '{key}'", key=key)
    if not isinstance(record, dict):
        raise TransformError(
            f"Transform for '{key}' returned {type(record).__name__}, expected a dict", key=key
        )
    try:
        json.dumps(record)
    except (TypeError, ValueError) as e:
        raise TransformError(f"Record for '{key}' is not JSON serializable: {e}", key=key, cause=e) from e
    return record
