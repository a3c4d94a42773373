"""Derive a tile's display status from the latest attempt and the cache."""

from typing import Optional

from .models import CacheEntry, FetchResult, StatusSnapshot, TileStatus


def resolve_status(
    in_flight: bool,
    latest_result: Optional[FetchResult],
    cache_entry: Optional[CacheEntry],
) -> StatusSnapshot:
    """Pick one of loading / success / stale / error.

    Args:
        in_flight: Whether a fetch is currently running for the tile
        latest_result: Result of the most recent completed attempt, if any
        cache_entry: Cached entry for the tile, if any

    Returns:
        StatusSnapshot with the record to show and the timestamp to display

    Notes:
        - Any available record means stale rather than error
        - A successful result without a record is treated as an error
        - Stale shows the last successful fetch time, falling back to the
          last request time
    """
    if latest_result is not None and latest_result.record is not None:
        record = latest_result.record
        meta = latest_result.meta
    elif cache_entry is not None and cache_entry.record is not None:
        record = cache_entry.record
        meta = cache_entry.meta
    else:
        record = None
        meta = None

    if record is None:
        if in_flight:
            return StatusSnapshot(status=TileStatus.LOADING)
        return StatusSnapshot(status=TileStatus.ERROR)

    if latest_result is not None and latest_result.succeeded and latest_result.record is not None:
        return StatusSnapshot(
            status=TileStatus.SUCCESS,
            record=record,
            display_timestamp=latest_result.meta.last_request_at,
        )

    timestamp = meta.last_success_at if meta.last_success_at is not None else meta.last_request_at
    return StatusSnapshot(status=TileStatus.STALE, record=record, display_timestamp=timestamp)
