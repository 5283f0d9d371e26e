from typing import Protocol, Sequence, Mapping

from tally.core.model.reading import Reading


class SnapshotStore(Protocol):
    def save(self, readings: Sequence[Mapping[str, str]]) -> None:
        ...

    def load(self) -> list[Reading]:
        ...
