import asyncio
import contextlib

from tally.core.model.message import (
    CONTENT_LENGTH,
    LAMPORT_CLOCK,
    Request,
    Response,
    parse_headers,
    parse_int,
)


class ProtocolError(Exception):
    pass


async def send_request(writer: asyncio.StreamWriter, request: Request) -> None:
    writer.write(request.to_bytes())
    await writer.drain()


async def read_response(reader: asyncio.StreamReader) -> Response:
    status_line = (await reader.readline()).decode("latin-1").strip()
    if not status_line:
        raise ConnectionResetError("Connection closed without a response")

    parts = status_line.split(maxsplit=2)
    status = parse_int(parts[1]) if len(parts) > 1 else None
    if status is None:
        raise ProtocolError(f"Invalid status line: '{status_line}'")

    lines = []
    while True:
        line = (await reader.readline()).decode("latin-1").rstrip("\r\n")
        if not line:
            break
        lines.append(line)

    headers = parse_headers(lines)
    clock = parse_int(headers.pop(LAMPORT_CLOCK, None)) or 0
    length = parse_int(headers.pop(CONTENT_LENGTH, None))

    if length is None:
        body = await reader.read()
    else:
        body = await reader.readexactly(length)

    return Response(status=status, clock=clock, body=body, headers=headers)


async def rpc_call(host: str, port: int, request: Request) -> Response:
    reader, writer = await asyncio.open_connection(host, port)
    try:
        await send_request(writer, request)
        return await read_response(reader)
    finally:
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
