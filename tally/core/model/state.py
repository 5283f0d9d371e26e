from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tally.core.protocol import Protocol


@dataclass
class ServerState:
    limiter: asyncio.Semaphore
    stop_event: asyncio.Event = field(default_factory=asyncio.Event)
    connections: set[Protocol] = field(default_factory=set)
    tasks: set[asyncio.Task[None]] = field(default_factory=set)
