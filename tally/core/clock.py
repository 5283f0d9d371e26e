import threading


class LamportClock:
    """
    Lamport logical clock.

    A single non-negative counter that orders events causally without a
    shared physical clock. Every observable event strictly increases it:
        - advance(): local event, counter + 1
        - merge(remote): remote event, max(counter, remote) + 1

    All operations are atomic, so one instance can be shared by every
    connection task, the sweeper, and worker threads.
    """

    def __init__(self, initial: int = 0) -> None:
        if initial < 0:
            raise ValueError(f"Clock value must be non-negative, got {initial}")
        self._value = initial
        self._lock = threading.Lock()

    def advance(self) -> int:
        """Advance the clock for a locally originated event."""
        with self._lock:
            self._value += 1
            return self._value

    def merge(self, remote: int) -> int:
        """
        Advance the clock on receipt of a message stamped with `remote`.

        The result is strictly greater than both the remote value and any
        value previously returned by this clock.
        """
        if remote < 0:
            raise ValueError(f"Remote clock value must be non-negative, got {remote}")

        with self._lock:
            self._value = max(self._value, remote) + 1
            return self._value

    def current(self) -> int:
        return self._value

    def __repr__(self) -> str:
        return f"LamportClock({self._value})"
