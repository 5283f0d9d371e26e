import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from tally.core.exception import SnapshotError
from tally.core.ports.snapshot import SnapshotStore
from tally.core.store import RecordStore


class SnapshotPersister:
    """
    Writes the record store to its snapshot store.

    The store is copied and written under a single lock, so concurrent
    callers (publish path, sweeper, inline expiry) are serialized and the
    last write always carries every change acknowledged before it.
    The blocking write runs in a dedicated one-thread executor.
    """

    def __init__(
        self,
        store: RecordStore,
        snapshots: SnapshotStore,
        max_workers: int = 1,
    ) -> None:
        self._store = store
        self._snapshots = snapshots
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tally-snapshot")
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger("tally.core.persistence")

    async def persist(self) -> bool:
        loop = asyncio.get_running_loop()

        async with self._lock:
            readings = self._store.snapshot_all()
            try:
                await loop.run_in_executor(self._executor, self._snapshots.save, readings)
            except SnapshotError as exc:
                self._logger.error(f"Snapshot not persisted, in-memory store stays authoritative: {exc}")
                return False

        return True

    def close(self) -> None:
        self._executor.shutdown(wait=True)
