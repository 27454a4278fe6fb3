"""
Background polling scheduler.

One asyncio task runs ticks back to back: the next tick is scheduled only
after the previous one (including every source fetch) has finished, so
ticks never overlap.
"""
import asyncio
import logging
import time
from typing import Callable, Optional

from adsb2dd.core.config import get_settings
from adsb2dd.services.sessions import Session, SessionStore, process_snapshot

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Polls every live session's source and updates its outputs."""

    def __init__(self, store: SessionStore, interval: Optional[float] = None,
                 source_stale_timeout: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        settings = get_settings()
        self.store = store
        self.interval = interval if interval is not None else settings.poll_interval
        self.source_stale_timeout = (
            source_stale_timeout if source_stale_timeout is not None
            else settings.source_stale_timeout
        )
        self.clock = clock
        self.tick_count = 0
        self.last_tick_at: Optional[float] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> None:
        """Run one full pass over every live session."""
        self.store.evict_idle(self.clock())

        for session in self.store.sessions():
            await self._poll_session(session)

        self.tick_count += 1
        self.last_tick_at = self.clock()

    async def _poll_session(self, session: Session) -> None:
        snapshot = await session.source.fetch()
        if snapshot is None:
            logger.debug(f"No data from {session.source.descriptor}, retrying next tick")
            return

        if session.key not in self.store:
            return

        now = self.clock()
        if session.is_duplicate(snapshot.source_time, now, self.source_stale_timeout):
            return

        try:
            process_snapshot(session, snapshot, now)
        except Exception as e:
            logger.error(f"Error processing session {session.key}: {e}")
            return

        session.last_snapshot = snapshot
        session.last_source_time = snapshot.source_time
        session.last_processed_at = now

    async def run(self) -> None:
        """Tick forever; a failed tick is logged and the loop carries on."""
        logger.info(f"Background polling started (interval: {self.interval}s)")
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in background polling: {e}")

            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Background polling stopped")


_scheduler: Optional[PollingScheduler] = None


def create_scheduler(store: SessionStore) -> PollingScheduler:
    """Create the process-wide scheduler for a store."""
    global _scheduler
    _scheduler = PollingScheduler(store)
    return _scheduler


def get_scheduler() -> Optional[PollingScheduler]:
    return _scheduler
