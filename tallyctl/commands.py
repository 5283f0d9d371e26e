import asyncio
import logging
from typing import Mapping

from tally.core.clock import LamportClock
from tally.core.model.message import CONTENT_TYPE, LAMPORT_CLOCK, Request, Response
from tally.core.utils.retry import BackoffRetry
from tally.infra.json_codec import CodecError, ReadingCodec
from tallyctl.parser import DEFAULT_PATH
from tallyctl.rpc import rpc_call

logger = logging.getLogger("tallyctl.commands")


async def publish(
    host: str,
    port: int,
    reading: Mapping[str, str],
    clock: LamportClock,
    retry: BackoffRetry | None = None,
    path: str = DEFAULT_PATH,
) -> Response:
    """
    Send one reading to the aggregator, reconnecting until it answers.

    The clock advances before every attempt and merges the clock value the
    aggregator replies with. Only transport failures are retried.
    """
    retry = retry or BackoffRetry()
    body = ReadingCodec.encode(reading)

    while True:
        stamp = clock.advance()
        request = Request(
            method="PUT",
            target=path,
            headers={
                CONTENT_TYPE: "application/json",
                LAMPORT_CLOCK: str(stamp),
            },
            body=body,
        )
        try:
            response = await rpc_call(host, port, request)
        except (OSError, asyncio.IncompleteReadError) as exc:
            if retry.exhausted:
                raise
            delay = retry.next_delay()
            logger.warning(f"PUT to {host}:{port} failed: {exc}. Retrying in {delay:.1f}s")
            await asyncio.sleep(delay)
            continue

        clock.merge(response.clock)
        logger.info(
            f"PUT to {host}:{port} with Lamport {stamp}: {response.status} {response.reason}"
        )
        return response


async def fetch(
    host: str,
    port: int,
    clock: LamportClock,
    path: str = DEFAULT_PATH,
) -> Response:
    stamp = clock.advance()
    request = Request(method="GET", target=path, headers={LAMPORT_CLOCK: str(stamp)})
    response = await rpc_call(host, port, request)
    clock.merge(response.clock)
    return response


def render(response: Response) -> str:
    lines = [f"{response.status} {response.reason}"]

    body = response.body.decode("utf-8", errors="replace").strip()
    if not body:
        return "\n".join(lines)

    content_type = response.content_type or ""
    if content_type.startswith("application/json"):
        try:
            readings = ReadingCodec.decode_many(response.body)
        except CodecError:
            lines.append(body)
            return "\n".join(lines)

        for reading in readings:
            lines.extend(f"{key}: {value}" for key, value in reading.items())
            lines.append("")
        return "\n".join(lines).rstrip("\n")

    lines.append(body)
    return "\n".join(lines)
