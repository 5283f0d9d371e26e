import logging

from tally.core.context import AggregatorContext
from tally.core.exception import DecodeFailure, MalformedRequest, NotFound, RequestError
from tally.core.model.message import CONTENT_LENGTH, CONTENT_TYPE, LAMPORT_CLOCK, Request, Response, parse_int
from tally.core.model.reading import IDENTITY_FIELD, identity_of
from tally.core.router import Router
from tally.core.types_ import ReceiveRequest, SendResponse
from tally.infra.json_codec import CodecError, ReadingCodec


class Coordinator:
    """
    Per-connection request handler of the aggregator.

    PUT publishes one reading:
        merge clock -> upsert -> persist -> 201 (new identity) / 200 (replaced)
    GET fetches every live reading:
        advance clock -> inline expiry -> 404 (empty) / 200 with a JSON array

    Rejected requests never touch the clock or the store.
    """

    def __init__(self, context: AggregatorContext) -> None:
        self._context = context
        self.router = Router()
        self.router.request("PUT")(self.publish)
        self.router.request("GET")(self.fetch)
        self._logger = logging.getLogger("tally.core.coordinator")

    async def __call__(self, receive: ReceiveRequest, send: SendResponse) -> None:
        while True:
            request = await receive()
            if request is None:
                break

            response = await self.handle(request)
            await send(response)

    async def handle(self, request: Request) -> Response:
        clock = self._context.clock
        handler = self.router.resolve(request.method)

        if handler is None:
            return Response.text(400, clock.current(), f"Unsupported method '{request.method}'.")

        try:
            return await handler(request)
        except RequestError as exc:
            self._logger.debug(f"{request.method} rejected with {exc.status}: {exc}")
            return Response.text(exc.status, clock.current(), str(exc))
        except Exception as exc:
            self._logger.error(f"Error in handler '{request.method}': {exc}", exc_info=exc)
            return Response.text(500, clock.current(), "Internal error.")

    async def publish(self, request: Request) -> Response:
        context = self._context
        remote = self._remote_clock(request)

        length = parse_int(request.header(CONTENT_LENGTH))
        if length is None or length <= 0:
            raise MalformedRequest("Missing Content-Length.")
        if len(request.body) < length:
            raise MalformedRequest("Incomplete body.")

        try:
            reading = ReadingCodec.decode(request.body[:length])
        except CodecError as exc:
            raise DecodeFailure(f"Invalid JSON or missing '{IDENTITY_FIELD}'.") from exc

        identity = identity_of(reading)
        if identity is None:
            raise DecodeFailure(f"Invalid JSON or missing '{IDENTITY_FIELD}'.")

        clock = context.clock.merge(remote)
        _, was_new = context.store.upsert(identity, reading, clock)
        await context.persister.persist()

        self._logger.info(f"PUT received for id: {identity}, Lamport: {clock}")
        return Response(status=201 if was_new else 200, clock=clock)

    async def fetch(self, request: Request) -> Response:
        context = self._context
        clock = context.clock.advance()
        await context.sweeper.sweep()

        readings = context.store.snapshot_all()
        if not readings:
            raise NotFound("No readings available.")

        return Response(
            status=200,
            clock=clock,
            body=ReadingCodec.encode_many(readings),
            headers={CONTENT_TYPE: "application/json"},
        )

    @staticmethod
    def _remote_clock(request: Request) -> int:
        raw = request.header(LAMPORT_CLOCK)
        if raw is None:
            return 0

        value = parse_int(raw)
        if value is None or value < 0:
            raise MalformedRequest(f"Invalid Lamport-Clock header: '{raw}'.")
        return value
