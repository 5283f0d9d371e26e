from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tally.core.clock import LamportClock
from tally.core.exception import SnapshotError
from tally.core.model.reading import identity_of
from tally.core.persistence import SnapshotPersister
from tally.core.ports.snapshot import SnapshotStore
from tally.core.store import RecordStore
from tally.core.sweeper import ExpirySweeper


@dataclass
class AggregatorContext:
    """
    Owned state of one aggregator process.

    Built once at startup and handed to the coordinator and the sweeper task.
    """
    clock: LamportClock
    store: RecordStore
    snapshots: SnapshotStore
    persister: SnapshotPersister
    sweeper: ExpirySweeper
    _logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("tally.core.context"),
        init=False,
        repr=False,
    )

    @classmethod
    def create(
        cls,
        snapshots: SnapshotStore,
        threshold_ms: int = 30_000,
        interval: float = 2.0,
    ) -> AggregatorContext:
        clock = LamportClock()
        store = RecordStore()
        persister = SnapshotPersister(store, snapshots)
        sweeper = ExpirySweeper(store, persister, threshold_ms=threshold_ms, interval=interval)
        return cls(
            clock=clock,
            store=store,
            snapshots=snapshots,
            persister=persister,
            sweeper=sweeper,
        )

    def restore(self) -> int:
        """
        Load the last snapshot into the store.

        Persisted clock values are not kept: restored records get clock 0 and
        a fresh arrival time. An unreadable or corrupted snapshot is logged and
        the aggregator starts empty.
        """
        try:
            readings = self.snapshots.load()
        except SnapshotError as exc:
            self._logger.error(f"Starting with an empty store, snapshot not restored: {exc}")
            return 0

        restored = 0
        for reading in readings:
            identity = identity_of(reading)
            if identity is None:
                self._logger.warning(f"Skipping persisted reading without identity: {reading}")
                continue
            self.store.upsert(identity, reading, clock=0)
            restored += 1

        self._logger.info(f"Restored {restored} reading(s) from snapshot")
        return restored

    def close(self) -> None:
        self.persister.close()
