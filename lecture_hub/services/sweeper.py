"""Recurring eviction of live lectures older than the retention window."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from .storage import LectureStorage, StorageError


LOGGER = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


class ExpirySweeper:
    """Background task calling ``delete_expired_live_lectures`` on a fixed interval.

    One asyncio task drives the loop: a sweep finishes before the next sleep
    starts. The blocking storage call runs in the default executor to keep the
    event loop responsive; ``stop()`` waits for that call to return, so a sweep
    from a stopped loop never overlaps one started by a later ``start()``.
    """

    def __init__(
        self,
        storage: LectureStorage,
        *,
        interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ) -> None:
        if interval <= 0:
            raise ValueError("Sweep interval must be positive")
        self._storage = storage
        self._interval = float(interval)
        self._lock = asyncio.Lock()
        self._worker: Optional[asyncio.Task[None]] = None
        self._in_flight: Optional[asyncio.Future[int]] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def run_once(self) -> int:
        """Run a single eviction pass and return the number of lectures removed."""

        try:
            removed = self._storage.delete_expired_live_lectures()
        except StorageError as error:
            LOGGER.warning("Expired live lecture sweep failed: %s", error)
            return 0
        if removed > 0:
            LOGGER.info("Deleted %s expired live lectures", removed)
        return removed

    async def start(self) -> None:
        async with self._lock:
            if self.running:
                return
            loop = asyncio.get_running_loop()
            self._worker = loop.create_task(self._run(), name="expiry-sweeper")
            LOGGER.debug("Expiry sweeper started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Cancel the loop and wait for a sweep already running in the executor."""

        async with self._lock:
            worker = self._worker
            self._worker = None
            if worker is None:
                return
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            in_flight = self._in_flight
            self._in_flight = None
            if in_flight is not None and not in_flight.done():
                try:
                    await in_flight
                except Exception:  # noqa: BLE001 - the sweep is abandoned either way
                    LOGGER.exception("Sweep in progress failed while stopping")
            LOGGER.debug("Expiry sweeper stopped")

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            self._in_flight = loop.run_in_executor(None, self.run_once)
            try:
                # Cancelling the loop must not detach the executor call; stop() awaits it.
                await asyncio.shield(self._in_flight)
            except Exception:  # noqa: BLE001 - keep sweeping after unexpected failures
                LOGGER.exception("Unexpected error during expired live lecture sweep")
            await asyncio.sleep(self._interval)


__all__ = ["DEFAULT_SWEEP_INTERVAL_SECONDS", "ExpirySweeper"]
