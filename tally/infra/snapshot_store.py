import logging
import os
import threading
from pathlib import Path
from typing import Mapping, Sequence

from tally.core.exception import SnapshotCorrupted, SnapshotError
from tally.core.model.reading import Reading
from tally.infra.json_codec import CodecError, ReadingCodec


class FileSnapshotStore:
    """
    Durable snapshot of the record store as a single JSON array file.

    Writes go to a sibling temporary file which is fsynced and then renamed
    over the target, so the file always holds one complete snapshot. A lock
    serializes writers from any thread.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._logger = logging.getLogger("tally.infra.snapshot")

    @property
    def path(self) -> Path:
        return self._path

    def save(self, readings: Sequence[Mapping[str, str]]) -> None:
        payload = ReadingCodec.encode_many(readings, indent=2)

        with self._lock:
            try:
                self._atomic_write(payload)
            except OSError as exc:
                raise SnapshotError(f"Failed to write snapshot {self._path}: {exc}") from exc

        self._logger.debug(f"Snapshot saved: {len(readings)} reading(s) to {self._path}")

    def load(self) -> list[Reading]:
        with self._lock:
            try:
                raw = self._path.read_bytes()
            except FileNotFoundError:
                return []
            except OSError as exc:
                raise SnapshotError(f"Failed to read snapshot {self._path}: {exc}") from exc

        if not raw.strip():
            return []

        try:
            return ReadingCodec.decode_many(raw)
        except CodecError as exc:
            raise SnapshotCorrupted(f"Snapshot file corrupted: {self._path}: {exc}") from exc

    def _atomic_write(self, payload: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")

        with tmp.open("wb") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())

        tmp.replace(self._path)
