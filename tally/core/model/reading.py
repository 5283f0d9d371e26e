from dataclasses import dataclass
from typing import Mapping

IDENTITY_FIELD = "id"

Reading = dict[str, str]


@dataclass(frozen=True)
class Record:
    """
    A stored reading.

    - identity: value of the reading's identity attribute (primary key)
    - reading: the attribute map as accepted
    - clock: Lamport value assigned when the reading was accepted
    - arrived_at_ms: wall-clock arrival in epoch milliseconds, only used for expiry
    """
    identity: str
    reading: Mapping[str, str]
    clock: int
    arrived_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.arrived_at_ms


def identity_of(reading: Mapping[str, str]) -> str | None:
    identity = reading.get(IDENTITY_FIELD)
    if not identity:
        return None
    return identity
