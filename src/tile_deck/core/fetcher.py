"""Single fetch attempt: retrieve, normalize, transform, cache, log."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

from .cache import PersistentCache
from .errors import EmbeddedError, TransportError
from .fault_log import FaultLog
from .models import CacheEntry, CacheMeta, FetchResult, LogLevel
from .registry import TransformRegistry, TransformStrategy, safe_transform
from .utils import Clock, now_ms

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 15.0

# Alpha Vantage style fields that signal an error inside a 200 response
DEFAULT_EMBEDDED_ERROR_FIELDS = ("Information", "Error Message", "Note")

Retrieve = Callable[[], Awaitable[Any]]


def _is_status(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _content_type(headers: Any) -> str:
    try:
        value = headers.get("content-type") or headers.get("Content-Type")
    except AttributeError:
        return ""
    return value or ""


def _decode_body(response: Any, headers: Any) -> Any:
    if "application/json" in _content_type(headers):
        return response.json()
    text = response.text
    return text() if callable(text) else text


def normalize_response(outcome: Any) -> Tuple[Optional[int], Any]:
    """Reduce a retrieval outcome to ``(status, payload)``.

    Accepts a response-like object (``status_code`` or ``status`` plus
    ``headers``; the body is decoded by content type), a ``{"data", "status"}``
    mapping or object, or an already-decoded payload (status unknown).
    """
    if isinstance(outcome, Mapping):
        if "data" in outcome and _is_status(outcome.get("status")):
            return outcome["status"], outcome["data"]
        return None, outcome

    headers = getattr(outcome, "headers", None)
    status = getattr(outcome, "status_code", None)
    if not _is_status(status):
        status = getattr(outcome, "status", None)

    if _is_status(status) and headers is not None:
        return status, _decode_body(outcome, headers)
    if _is_status(status) and hasattr(outcome, "data"):
        return status, outcome.data
    return None, outcome


def raise_for_embedded_error(payload: Any, status: Optional[int], fields: Iterable[str]):
    """Raise EmbeddedError if a decoded payload reports an error in its body."""
    if not isinstance(payload, Mapping):
        return

    if "error" in payload:
        value = payload["error"]
        if isinstance(value, Mapping):
            value = value.get("message")
        message = value if isinstance(value, str) and value else "API error"
        raise EmbeddedError(message, field="error", status=status)

    for field in fields:
        value = payload.get(field)
        if isinstance(value, str):
            raise EmbeddedError(value or "API error", field=field, status=status)


def _error_status(error: BaseException) -> Optional[int]:
    status = getattr(error, "status", None)
    if _is_status(status):
        return status
    response = getattr(error, "response", None)
    status = getattr(response, "status_code", None)
    return status if _is_status(status) else None


def _consume_late_result(task: "asyncio.Future[Any]"):
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug("Retrieval finished after timeout with error: %s", error)


class FetchCoordinator:
    """Runs fetch attempts and keeps the cache consistent with their outcome.

    ``attempt`` never raises for data faults (transport, timeout, embedded
    error, transform failure); those become a failed cache entry plus a fault
    log entry. Only a missing transform strategy raises, and it does so as soon
    as ``attempt`` is called.
    """

    def __init__(
        self,
        registry: TransformRegistry,
        cache: PersistentCache,
        fault_log: FaultLog,
        timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        embedded_error_fields: Iterable[str] = DEFAULT_EMBEDDED_ERROR_FIELDS,
        discard_superseded: bool = False,
        clock: Clock = now_ms,
    ):
        self.registry = registry
        self.cache = cache
        self.fault_log = fault_log
        self.timeout_seconds = timeout_seconds
        self.embedded_error_fields = tuple(embedded_error_fields)
        self.discard_superseded = discard_superseded
        self.clock = clock
        self._sequence: Dict[str, int] = {}

    def attempt(
        self,
        key: str,
        retrieve: Retrieve,
        transform_key: str,
        *,
        source: Optional[str] = None,
        request_url: Optional[str] = None,
    ) -> Awaitable[FetchResult]:
        """Start a fetch attempt for ``key``.

        Args:
            key: Cache key of the tile instance
            retrieve: Zero-argument coroutine function returning the raw outcome
            transform_key: Tile type whose transform strategy applies
            source: Name recorded in fault log entries (default: ``key``)
            request_url: URL recorded in fault log details

        Returns:
            Awaitable resolving to the FetchResult

        Raises:
            ConfigurationError: immediately, if no strategy is registered for
                ``transform_key``. Nothing is cached or logged in that case.
        """
        strategy = self.registry.require(transform_key)
        sequence = self._sequence.get(key, 0) + 1
        self._sequence[key] = sequence
        return self._run(key, retrieve, transform_key, strategy, sequence, source or key, request_url)

    async def _retrieve_with_timeout(self, retrieve: Retrieve) -> Any:
        task = asyncio.ensure_future(retrieve())
        done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        if not done:
            # Left running; its late result is dropped
            task.add_done_callback(_consume_late_result)
            raise TransportError(f"Request timed out after {self.timeout_seconds:g} seconds")
        return task.result()

    async def _run(
        self,
        key: str,
        retrieve: Retrieve,
        transform_key: str,
        strategy: TransformStrategy,
        sequence: int,
        source: str,
        request_url: Optional[str],
    ) -> FetchResult:
        status: Optional[int] = None
        try:
            outcome = await self._retrieve_with_timeout(retrieve)
            status, payload = normalize_response(outcome)
            if status is not None and not 200 <= status < 300:
                raise TransportError(f"HTTP {status}", status=status)
            raise_for_embedded_error(payload, status, self.embedded_error_fields)
            record = safe_transform(strategy, payload, transform_key)
        except Exception as e:
            if self._is_superseded(key, sequence):
                return self._superseded_result(key)
            return self._record_failure(key, e, status, source, request_url)

        if self._is_superseded(key, sequence):
            return self._superseded_result(key)

        now = self.clock()
        entry = CacheEntry(
            record=record,
            last_request_at=now,
            last_request_successful=True,
            last_success_at=now,
        )
        self.cache.write(key, entry)
        logger.debug("Fetched %s", key)
        return FetchResult.from_entry(entry)

    def _is_superseded(self, key: str, sequence: int) -> bool:
        return self.discard_superseded and sequence != self._sequence.get(key)

    def _superseded_result(self, key: str) -> FetchResult:
        logger.debug("Discarding superseded attempt for %s", key)
        entry = self.cache.read(key)
        if entry is not None:
            return FetchResult.from_entry(entry, superseded=True)
        meta = CacheMeta(last_request_at=self.clock(), last_request_successful=False)
        return FetchResult(record=None, meta=meta, superseded=True)

    def _record_failure(
        self,
        key: str,
        error: Exception,
        status: Optional[int],
        source: str,
        request_url: Optional[str],
    ) -> FetchResult:
        error_status = _error_status(error)
        if error_status is not None:
            status = error_status
        message = str(error) or type(error).__name__

        previous = self.cache.read(key)
        now = self.clock()
        if previous is not None and previous.last_success_at is not None:
            now = max(now, previous.last_success_at)
        entry = CacheEntry(
            record=previous.record if previous else None,
            last_request_at=now,
            last_request_successful=False,
            last_success_at=previous.last_success_at if previous else None,
        )
        self.cache.write(key, entry)

        details: Dict[str, Union[str, int, float]] = {
            "storageKey": key,
            "errorName": type(getattr(error, "cause", None) or error).__name__,
            "errorMessage": message,
        }
        if status is not None:
            details["status"] = status
        if request_url:
            details["requestUrl"] = request_url
        self.fault_log.add(LogLevel.ERROR, source, message, details)

        logger.warning("Fetch failed for %s: %s", key, message)
        return FetchResult.from_entry(entry)
