from typing import Awaitable, Callable, Protocol

from tally.core.model.message import Request, Response

ReceiveRequest = Callable[[], Awaitable[Request | None]]

SendResponse = Callable[[Response], Awaitable[None]]


class GatewayProtocol(Protocol):
    async def __call__(self, receive: ReceiveRequest, send: SendResponse) -> None:
        ...
