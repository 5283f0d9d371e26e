import contextlib
import signal
import sys
import threading
from collections.abc import Callable
from types import FrameType
from typing import Generator

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)


@contextlib.contextmanager
def signal_handler(
    handler: Callable[[int, FrameType | None], None],
) -> Generator[list[int], None, None]:
    """
    Route shutdown signals to `handler` for the duration of the block.

    Yields the list of captured signal numbers. Outside the main thread
    signals cannot be installed and the block runs unchanged.
    """
    captured: list[int] = []

    if threading.current_thread() is not threading.main_thread():
        yield captured
        return

    def capture(sig: int, frame: FrameType | None) -> None:
        captured.append(sig)
        handler(sig, frame)

    previous = {sig: signal.signal(sig, capture) for sig in SHUTDOWN_SIGNALS}
    try:
        yield captured
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)
