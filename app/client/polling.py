"""Fixed-interval polling surfaces with new-item detection.

Each surface cycles ``Idle -> Fetching -> Reconciling -> Idle`` on its own
timer. A tick that fires while the previous fetch is still in flight is
skipped, so at most one request per surface is outstanding. A failed fetch
keeps the previous snapshot and the loop carries on at the next tick.
"""

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    RECONCILING = "reconciling"


class SnapshotDeltaDetector(Generic[T]):
    """Owns the "last seen" value of a surface and detects new items.

    By default growth is measured with ``size``. When ``key`` is given the
    detector compares identities instead and fires when the latest collection
    holds an item whose key was not in the previous snapshot, which still
    works once the server caps the list at a fixed page size.

    Detection fires only when the previous snapshot was non-empty, so the
    first load never raises an alert. The snapshot is replaced after every
    comparison whether or not it fired.
    """

    def __init__(self, size: Callable[[T], int] = len, key: Callable[[Any], Any] | None = None):
        self._size = size
        self._key = key
        self.snapshot: T | None = None

    @property
    def previous_size(self) -> int:
        return 0 if self.snapshot is None else self._size(self.snapshot)

    def unseen(self, latest: T) -> list:
        """Items of ``latest`` whose key is absent from the snapshot (key mode only)."""
        if self._key is None or self.snapshot is None:
            return []
        seen = {self._key(item) for item in self.snapshot}
        return [item for item in latest if self._key(item) not in seen]

    def reconcile(self, latest: T) -> bool:
        previous = self.previous_size
        if self._key is not None:
            fired = previous > 0 and bool(self.unseen(latest))
        else:
            fired = self._size(latest) > previous and previous > 0
        self.snapshot = latest
        return fired

    def reset(self) -> None:
        self.snapshot = None


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PollingSurface(Generic[T]):
    """One independently scheduled fetch loop.

    Args:
        name: Label used in logs.
        fetch: Coroutine function returning the latest collection.
        interval: Seconds between ticks.
        detector: Optional delta detector; ``on_new_items`` runs when it fires.
        on_update: Called with every successfully fetched collection.
        on_new_items: Called with the latest collection when growth is detected.
    """

    def __init__(
        self,
        name: str,
        fetch: Callable[[], Awaitable[T]],
        interval: float,
        detector: SnapshotDeltaDetector[T] | None = None,
        on_update: Callable[[T], Any] | None = None,
        on_new_items: Callable[[T], Any] | None = None,
    ):
        if interval <= 0:
            raise ValueError("Polling interval must be positive")
        self.name = name
        self.fetch = fetch
        self.interval = interval
        self.detector = detector
        self.on_update = on_update
        self.on_new_items = on_new_items

        self.state = PollState.IDLE
        self.snapshot: T | None = None
        self.failures = 0
        self.skipped_ticks = 0
        self._loop_task: asyncio.Task | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def poll_once(self) -> bool:
        """Run one fetch/reconcile cycle.

        Returns False when the fetch failed or the surface was busy.
        """
        if self.state != PollState.IDLE:
            self.skipped_ticks += 1
            return False

        self.state = PollState.FETCHING
        try:
            try:
                latest = await self.fetch()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.failures += 1
                logger.warning(f"Poll of {self.name} failed, keeping previous snapshot: {e}")
                return False

            self.state = PollState.RECONCILING
            fired = self.detector.reconcile(latest) if self.detector is not None else False
            self.snapshot = latest
            try:
                if self.on_update is not None:
                    await _maybe_await(self.on_update(latest))
                if fired and self.on_new_items is not None:
                    logger.debug(f"New items detected on {self.name}")
                    await _maybe_await(self.on_new_items(latest))
            except Exception:
                logger.exception(f"Reconciliation callback of {self.name} failed")
            return True
        finally:
            self.state = PollState.IDLE

    def tick(self) -> bool:
        """Start a cycle in the background unless one is already in flight."""
        if self.in_flight:
            self.skipped_ticks += 1
            logger.debug(f"Skipping {self.name} tick, previous request still in flight")
            return False
        self._inflight = asyncio.create_task(self.poll_once())
        return True

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the timer. The first tick fires immediately."""
        if self.running:
            return
        logger.debug(f"Starting {self.name} polling every {self.interval}s")
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the timer and any in-flight request."""
        for task in (self._loop_task, self._inflight):
            if task is not None and not task.done():
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task
        self._loop_task = None
        self._inflight = None
        self.state = PollState.IDLE
        logger.debug(f"Stopped {self.name} polling")
