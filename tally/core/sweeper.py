import asyncio
import logging

from tally.core.persistence import SnapshotPersister
from tally.core.store import RecordStore


class ExpirySweeper:
    def __init__(
        self,
        store: RecordStore,
        persister: SnapshotPersister,
        threshold_ms: int = 30_000,
        interval: float = 2.0,
    ) -> None:
        self._store = store
        self._persister = persister
        self.threshold_ms = threshold_ms
        self.interval = interval
        self._logger = logging.getLogger("tally.core.sweeper")

    async def sweep(self, now_ms: int | None = None) -> bool:
        """
        Run one eviction pass; persist the store when it changed.

        Returns whether anything was evicted.
        """
        evicted = self._store.evict_older_than(self.threshold_ms, now_ms=now_ms)
        if evicted:
            self._logger.info(f"Evicted expired readings, {len(self._store)} remaining")
            await self._persister.persist()
        return evicted

    async def run(self, stop_event: asyncio.Event) -> None:
        self._logger.debug(
            f"Sweeper started: every {self.interval}s, threshold {self.threshold_ms}ms"
        )

        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass

            try:
                await self.sweep()
            except Exception as exc:
                self._logger.error("Sweep pass failed", exc_info=exc)

        self._logger.debug("Sweeper stopped")
