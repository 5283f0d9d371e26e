import asyncio
import logging

from tally.core.config import Config
from tally.core.context import AggregatorContext
from tally.core.model.state import ServerState
from tally.core.protocol import Protocol
from tally.core.utils.sig import signal_handler


class Server:
    def __init__(self, config: Config, context: AggregatorContext) -> None:
        self._config = config
        self.context = context
        self.state = ServerState(limiter=asyncio.Semaphore(config.limit_concurrency))
        self._server: asyncio.Server | None = None
        self._logger = logging.getLogger("tally.core.server")

    async def serve(self) -> None:
        def graceful_exit(*_) -> None:
            self.state.stop_event.set()

        with signal_handler(graceful_exit):
            await self.startup()
            try:
                await self.loop_forever()
            finally:
                await self.shutdown()

    async def startup(self) -> None:
        config = self._config
        loop = asyncio.get_running_loop()

        # The store is filled before the first connection is accepted.
        self.context.restore()

        self._server = await loop.create_server(
            self.create_protocol,
            host=config.host,
            port=config.port,
            backlog=config.backlog,
        )

        sweeper = loop.create_task(self.context.sweeper.run(self.state.stop_event))
        sweeper.add_done_callback(self.state.tasks.discard)
        self.state.tasks.add(sweeper)

        host, port = self.bound_address
        self._logger.info(f"Aggregation server started at '{host}:{port}'")

    @property
    def bound_address(self) -> tuple[str, int]:
        if self._server is None or not self._server.sockets:
            raise RuntimeError("Server is not listening")
        sockname = self._server.sockets[0].getsockname()
        return sockname[0], sockname[1]

    def create_protocol(self) -> asyncio.Protocol:
        loop = asyncio.get_running_loop()
        return Protocol(config=self._config, server_state=self.state, loop=loop)

    async def loop_forever(self) -> None:
        await self.state.stop_event.wait()

    async def shutdown(self) -> None:
        self.state.stop_event.set()
        server = self._server

        if server is not None:
            server.close()

        for connection in self.state.connections.copy():
            connection.shutdown()

        try:
            await asyncio.wait_for(
                self._wait_task_complete(server),
                timeout=self._config.timeout_graceful_shutdown
            )
        except asyncio.TimeoutError:
            self._logger.error(
                f"Cancel {len(self.state.tasks)} running task(s), "
                f"timeout graceful shutdown: {self.state.tasks}"
            )
            for task in self.state.tasks:
                task.cancel("Task cancelled, timeout graceful shutdown exceeded")

        self.context.close()
        self._logger.info("Aggregation server stopped")

    async def _wait_task_complete(self, server: asyncio.Server | None) -> None:
        if self.state.connections:
            self._logger.info("Waiting for client connections to close.")

        while self.state.connections:
            await asyncio.sleep(0.1)

        if self.state.tasks:
            self._logger.info("Waiting for background tasks to complete.")

        while self.state.tasks:
            await asyncio.sleep(0.1)

        if server is not None:
            await server.wait_closed()
