"""Per-tile refresh state machine: mount, periodic tick, visibility, focus, manual."""

import asyncio
import logging
import math
from typing import Awaitable, Callable, List, Optional, Set

from .cache import PersistentCache
from .config import RefreshPolicy
from .fetcher import FetchCoordinator, Retrieve
from .models import FetchResult, StatusSnapshot
from .refresh_service import TileRefreshService
from .status import resolve_status
from .utils import Clock, now_ms
from .visibility import PageVisibilitySource

logger = logging.getLogger(__name__)

ChangeListener = Callable[[StatusSnapshot], None]


class RefreshScheduler:
    """Decides when one tile instance fetches, and tracks what it should show.

    Triggers:
        - mount: adopt a cache entry with a record younger than ``interval_ms``,
          else fetch
        - periodic tick: every ``interval_ms`` while auto refresh is on and the
          page is visible; fetches only once ``interval_ms`` has elapsed since
          the last fetch
        - focus: fetch when more than ``interval_ms`` has elapsed (policy-gated)
        - manual ``refresh()``: always fetches

    Hiding the page tears the timer down; showing it builds a fresh one.
    Results of fetches still running at unmount are not committed.
    """

    def __init__(
        self,
        key: str,
        transform_key: str,
        retrieve: Retrieve,
        coordinator: FetchCoordinator,
        cache: PersistentCache,
        policy: RefreshPolicy,
        visibility: PageVisibilitySource,
        clock: Clock = now_ms,
        on_change: Optional[ChangeListener] = None,
        refresh_service: Optional[TileRefreshService] = None,
        source: Optional[str] = None,
        request_url: Optional[str] = None,
    ):
        self.key = key
        self.transform_key = transform_key
        self.retrieve = retrieve
        self.coordinator = coordinator
        self.cache = cache
        self.policy = policy
        self.visibility = visibility
        self.clock = clock
        self.on_change = on_change
        self.refresh_service = refresh_service
        self.source = source
        self.request_url = request_url

        self.latest_result: Optional[FetchResult] = None
        self.last_fetch_at: Optional[int] = None
        self._mounted = False
        self._generation = 0
        self._pending = 0
        self._issued = 0
        self._committed = 0
        self._current: Optional["asyncio.Task[None]"] = None
        self._tasks: Set["asyncio.Task[None]"] = set()
        self._timer: Optional["asyncio.Task[None]"] = None
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def in_flight(self) -> bool:
        return self._pending > 0

    @property
    def timer_active(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def snapshot(self) -> StatusSnapshot:
        return resolve_status(self.in_flight, self.latest_result, self.cache.read(self.key))

    def _elapsed(self) -> float:
        if self.last_fetch_at is None:
            return math.inf
        return self.clock() - self.last_fetch_at

    def _notify(self):
        if self.on_change is None:
            return
        try:
            self.on_change(self.snapshot())
        except Exception:
            logger.exception("Status listener failed for %s", self.key)

    async def mount(self):
        """Adopt fresh cached data or fetch, then start listening for triggers.

        Returns once the initial fetch (if any) has completed.
        """
        if self._mounted:
            return

        entry = self.cache.read(self.key)
        fetch = None
        if (
            entry is not None
            and entry.record is not None
            and self.clock() - entry.last_request_at < self.policy.interval_ms
        ):
            logger.debug("Using cached data for %s", self.key)
            self.latest_result = FetchResult.from_entry(entry)
            self.last_fetch_at = entry.last_request_at
        else:
            fetch = self._start_fetch()

        self._mounted = True
        self._unsubscribers.append(self.visibility.on_visibility_change(self._on_visibility_change))
        if self.policy.refresh_on_focus:
            self._unsubscribers.append(self.visibility.on_focus(self._on_focus))
        if self.refresh_service is not None:
            self._unsubscribers.append(self.refresh_service.register(self.refresh))
        if self.visibility.is_visible():
            self._start_timer()

        self._notify()
        if fetch is not None:
            await fetch

    def unmount(self):
        """Stop timers and listeners; abandon any fetch still running."""
        if not self._mounted:
            return
        self._mounted = False
        self._generation += 1
        self._stop_timer()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    async def refresh(self):
        """Fetch now regardless of freshness."""
        if not self._mounted:
            logger.debug("Ignoring refresh of unmounted tile %s", self.key)
            return
        await self._start_fetch()

    async def wait_idle(self):
        """Wait for every fetch started so far to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def tick(self) -> Optional[Awaitable[None]]:
        """Periodic timer callback. Fetches only if the interval has elapsed."""
        if not self._mounted:
            return None
        if self._elapsed() >= self.policy.interval_ms:
            return self._trigger()
        return None

    def _on_focus(self):
        if self._mounted and self._elapsed() > self.policy.interval_ms:
            self._trigger()

    def _on_visibility_change(self, visible: bool):
        if not self._mounted:
            return
        if visible:
            self._start_timer()
        else:
            self._stop_timer()

    def _start_timer(self):
        if not self.policy.auto_refresh_enabled or self.timer_active:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())

    def _stop_timer(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _run_timer(self):
        interval_seconds = self.policy.interval_ms / 1000
        while True:
            await asyncio.sleep(interval_seconds)
            self.tick()

    def _trigger(self) -> "asyncio.Task[None]":
        # Automatic triggers share a fetch that is already running
        if self._current is not None and not self._current.done():
            return self._current
        return self._start_fetch()

    def _start_fetch(self) -> "asyncio.Task[None]":
        attempt = self.coordinator.attempt(
            self.key,
            self.retrieve,
            self.transform_key,
            source=self.source,
            request_url=self.request_url,
        )
        self._issued += 1
        self._pending += 1
        self.last_fetch_at = self.clock()

        task = asyncio.ensure_future(self._complete(attempt, self._issued, self._generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._current = task
        self._notify()
        return task

    async def _complete(self, attempt: Awaitable[FetchResult], sequence: int, generation: int):
        try:
            result = await attempt
        finally:
            self._pending -= 1

        if generation != self._generation:
            logger.debug("Dropping result of abandoned fetch for %s", self.key)
            return
        if sequence > self._committed:
            self._committed = sequence
            self.latest_result = result
        self._notify()
