"""Dashboard-wide "refresh all tiles" fan-out."""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Set, Union

RefreshCallback = Callable[[], Union[None, Awaitable[Any]]]


class TileRefreshService:
    """Collects each mounted tile's manual refresh and triggers them together."""

    def __init__(self):
        self._callbacks: Set[RefreshCallback] = set()
        self._is_refreshing = False

    def register(self, callback: RefreshCallback) -> Callable[[], None]:
        """Register a tile's refresh callback. Returns the unregister function."""
        self._callbacks.add(callback)

        def unregister():
            self._callbacks.discard(callback)

        return unregister

    async def refresh_all(self):
        """Run every registered callback concurrently.

        Calls made while a refresh is already running are ignored.
        """
        if self._is_refreshing:
            return

        self._is_refreshing = True
        try:
            pending = []
            for callback in list(self._callbacks):
                result = callback()
                if inspect.isawaitable(result):
                    pending.append(result)
            await asyncio.gather(*pending)
        finally:
            self._is_refreshing = False

    @property
    def is_refreshing(self) -> bool:
        return self._is_refreshing

    def __len__(self) -> int:
        return len(self._callbacks)
