from tally.bootstrap.config.settings import TallyConfig
from tally.core.config import Config
from tally.core.context import AggregatorContext
from tally.core.coordinator import Coordinator
from tally.core.server import Server
from tally.infra.snapshot_store import FileSnapshotStore


class ServerBuilder:
    """
    Constructs a ready-to-run aggregation Server.

    Responsibilities:
    - Build the snapshot store from the storage settings
    - Build the aggregator context (clock, record store, persister, sweeper)
    - Build the coordinator and the transport configuration
    """

    def __init__(self, config: TallyConfig) -> None:
        self.config = config

    def build(self) -> Server:
        context = self._build_context()
        coordinator = Coordinator(context)
        return Server(config=self._build_server_config(coordinator), context=context)

    def _build_context(self) -> AggregatorContext:
        snapshots = FileSnapshotStore(self.config.storage.snapshot_path)
        expiry = self.config.expiry
        return AggregatorContext.create(
            snapshots=snapshots,
            threshold_ms=expiry.threshold_ms,
            interval=expiry.interval,
        )

    def _build_server_config(self, coordinator: Coordinator) -> Config:
        server = self.config.server
        return Config(
            app=coordinator,
            host=server.host,
            port=server.port,
            backlog=server.backlog,
            limit_concurrency=server.limit_concurrency,
            max_buffer_size=server.max_buffer_size,
            max_message_size=server.max_message_size,
            timeout_graceful_shutdown=server.timeout_graceful_shutdown,
        )
