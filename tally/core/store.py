import threading
import time
from typing import Mapping

from tally.core.model.reading import Reading, Record


def now_millis() -> int:
    return int(time.time() * 1000)


class RecordStore:
    """
    Concurrent mapping identity -> Record.

    Mutations on the same identity are serialized by a striped lock
    (identity hash -> lock), so upsert and eviction of one key never
    interleave while unrelated keys proceed in parallel. There is no
    global lock over the mapping.

    Reads take a copy of the mapping; a dict copy is atomic and records are
    immutable, so readers never observe a half-written record.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes <= 0:
            raise ValueError("stripes must be positive")
        self._records: dict[str, Record] = {}
        self._locks = [threading.Lock() for _ in range(stripes)]

    def _lock_for(self, identity: str) -> threading.Lock:
        return self._locks[hash(identity) % len(self._locks)]

    def upsert(
        self,
        identity: str,
        reading: Mapping[str, str],
        clock: int,
        now_ms: int | None = None,
    ) -> tuple[Record, bool]:
        """
        Insert or replace the record for `identity`.

        Returns the new record and whether the identity was previously absent.
        """
        if now_ms is None:
            now_ms = now_millis()

        record = Record(
            identity=identity,
            reading=dict(reading),
            clock=clock,
            arrived_at_ms=now_ms,
        )

        with self._lock_for(identity):
            was_new = identity not in self._records
            self._records[identity] = record

        return record, was_new

    def get(self, identity: str) -> Record | None:
        return self._records.get(identity)

    def records(self) -> list[Record]:
        return list(self._records.copy().values())

    def snapshot_all(self) -> list[Reading]:
        return [dict(record.reading) for record in self.records()]

    def evict_older_than(self, threshold_ms: int, now_ms: int | None = None) -> bool:
        """
        Remove every record older than `threshold_ms`.

        Each candidate is checked again under its key lock before removal:
        a record replaced concurrently is newer and stays.
        """
        if now_ms is None:
            now_ms = now_millis()

        evicted = False
        for record in self.records():
            if record.age_ms(now_ms) <= threshold_ms:
                continue

            with self._lock_for(record.identity):
                current = self._records.get(record.identity)
                if current is None or current.age_ms(now_ms) <= threshold_ms:
                    continue
                del self._records[record.identity]
                evicted = True

        return evicted

    def is_empty(self) -> bool:
        return not self._records

    def clear(self) -> None:
        for identity in list(self._records):
            with self._lock_for(identity):
                self._records.pop(identity, None)

    def __len__(self) -> int:
        return len(self._records)
