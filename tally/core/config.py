from dataclasses import dataclass

from tally.core.types_ import GatewayProtocol


@dataclass
class Config:
    app: GatewayProtocol

    host: str
    port: int
    backlog: int = 128

    limit_concurrency: int = 1024
    max_buffer_size: int = 64 * 1024  # 64KB of request line + headers
    max_message_size: int = 1 * 1024 * 1024  # 1MB

    timeout_graceful_shutdown: float = 5.0
