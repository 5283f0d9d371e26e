import asyncio
import logging
import re

from tally.core.config import Config
from tally.core.model.message import CONTENT_LENGTH, Request, Response, parse_headers, parse_int
from tally.core.model.state import ServerState
from tally.core.types_ import GatewayProtocol

# End of the header section, tolerating bare '\n' line endings.
_HEAD_END = re.compile(rb"\r?\n\r?\n")
_LINE_END = re.compile(r"\r?\n")


class Protocol(asyncio.Protocol):
    """
    One inbound connection carrying a single request.

    Bytes are buffered until the header section is complete, then until
    Content-Length body bytes have arrived. The parsed request is handed to
    the application in its own task; the response closes the connection.
    """

    def __init__(
        self,
        config: Config,
        server_state: ServerState,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._transport: asyncio.Transport = None   # type: ignore[assignment]
        self._cycle: Cycle = None   # type: ignore[assignment]

        self._config = config
        self._app = config.app
        self._loop = loop or asyncio.get_event_loop()
        self._connections = server_state.connections
        self._tasks = server_state.tasks
        self._limiter = server_state.limiter
        self._buffer = bytearray()
        self._head: tuple[str, str, dict[str, str]] | None = None
        self._expected_length = 0
        self._dispatched = False
        self._logger = logging.getLogger("tally.core.transport")

    def connection_made(self, transport: asyncio.Transport) -> None:
        self._transport = transport
        self._connections.add(self)
        self._cycle = Cycle(transport=transport, queue=asyncio.Queue())

        self._logger.debug(f"Connection made: {transport.get_extra_info('peername')}")

    def connection_lost(self, exc: Exception | None) -> None:
        self._connections.discard(self)
        self._logger.debug(f"Connection lost: {self._transport.get_extra_info('peername')}")

        if not self._dispatched:
            self._logger.debug("Connection closed before a complete request was received")
        self._cycle.queue.put_nowait(None)

    def eof_received(self) -> bool | None:
        # Keep the transport open to answer a request that is already complete.
        if self._dispatched:
            return True
        return None

    def data_received(self, data: bytes) -> None:
        if self._dispatched:
            return

        self._buffer.extend(data)

        if self._head is None:
            match = _HEAD_END.search(self._buffer)
            if match is None:
                if len(self._buffer) > self._config.max_buffer_size:
                    self._logger.warning("Buffer overflow, closing connection")
                    self._transport.close()
                return

            head = bytes(self._buffer[:match.start()]).decode("latin-1")
            del self._buffer[:match.end()]
            self._head = self._parse_head(head)

            length = parse_int(self._head[2].get(CONTENT_LENGTH))
            self._expected_length = length if length is not None and length > 0 else 0

            if self._expected_length > self._config.max_message_size:
                self._logger.warning("Message too large, closing connection")
                self._transport.close()
                return

        if len(self._buffer) < self._expected_length:
            return

        method, target, headers = self._head
        body = bytes(self._buffer[:self._expected_length])
        self._buffer.clear()
        self._dispatch(Request(method=method, target=target, headers=headers, body=body))

    def shutdown(self) -> None:
        if not self._dispatched:
            self._transport.close()

    def _dispatch(self, request: Request) -> None:
        self._dispatched = True
        self._cycle.queue.put_nowait(request)
        self._cycle.queue.put_nowait(None)

        task = self._loop.create_task(self._cycle.run_app(self._app, self._limiter))
        task.add_done_callback(self._tasks.discard)
        self._tasks.add(task)

    @staticmethod
    def _parse_head(head: str) -> tuple[str, str, dict[str, str]]:
        request_line, *header_lines = _LINE_END.split(head)
        parts = request_line.split()
        method = parts[0].upper() if parts else ""
        target = parts[1] if len(parts) > 1 else "/"
        return method, target, parse_headers(header_lines)


class Cycle:
    def __init__(
        self,
        transport: asyncio.Transport,
        queue: asyncio.Queue[Request | None],
    ) -> None:
        self.queue = queue
        self._transport = transport
        self._logger = logging.getLogger("tally.core.transport")

    async def send(self, response: Response) -> None:
        if self._transport.is_closing():
            self._logger.debug(f"Dropping {response.status} response, connection already closed")
            return

        try:
            self._transport.write(response.to_bytes())
        except Exception as exc:
            self._logger.error(f"Failed to send response: {exc}")
        finally:
            self._transport.close()

    async def receive(self) -> Request | None:
        return await self.queue.get()

    async def run_app(self, app: GatewayProtocol, limiter: asyncio.Semaphore) -> None:
        try:
            async with limiter:
                await app(self.receive, self.send)
        except Exception as exc:
            self._logger.error("Exception in application gateway", exc_info=exc)
        finally:
            self._transport.close()
