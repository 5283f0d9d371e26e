import random
from dataclasses import dataclass, field


@dataclass
class BackoffRetry:
    """
    Delay schedule between reconnection attempts.

    With factor=1.0 and jitter=0 the delay is fixed, which is what content
    sources use when the aggregator is unreachable.
    """
    initial: float = 2.0
    maximum: float = 30.0
    factor: float = 1.0
    jitter: float = 0.0
    max_attempts: int | None = None

    attempts: int = field(default=0, init=False)
    _current: float = field(default=0.0, init=False, repr=False)

    def __post_init__(self) -> None:
        self._current = self.initial

    @property
    def exhausted(self) -> bool:
        return self.max_attempts is not None and self.attempts >= self.max_attempts

    def next_delay(self) -> float:
        self.attempts += 1
        delay = self._current

        self._current = min(self._current * self.factor, self.maximum)

        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)

        return delay

    def reset(self) -> None:
        self.attempts = 0
        self._current = self.initial
