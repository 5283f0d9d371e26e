from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Iterable

LAMPORT_CLOCK = "lamport-clock"
CONTENT_LENGTH = "content-length"
CONTENT_TYPE = "content-type"

_CANONICAL = {
    LAMPORT_CLOCK: "Lamport-Clock",
    CONTENT_LENGTH: "Content-Length",
    CONTENT_TYPE: "Content-Type",
}


def canonical(name: str) -> str:
    return _CANONICAL.get(name, "-".join(part.capitalize() for part in name.split("-")))


def parse_headers(lines: Iterable[str]) -> dict[str, str]:
    """Parse `Name: value` lines into a dict keyed by lower-case name."""
    headers: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers[name.strip().lower()] = value.strip()
    return headers


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _render(start_line: str, headers: dict[str, str], body: bytes) -> bytes:
    lines = [start_line]
    lines.extend(f"{canonical(name)}: {value}" for name, value in headers.items())
    head = "\r\n".join(lines) + "\r\n\r\n"
    return head.encode("latin-1") + body


@dataclass
class Request:
    method: str
    target: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    def to_bytes(self) -> bytes:
        headers = dict(self.headers)
        if self.body:
            headers[CONTENT_LENGTH] = str(len(self.body))
        return _render(f"{self.method} {self.target} HTTP/1.1", headers, self.body)


@dataclass
class Response:
    status: int
    clock: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def reason(self) -> str:
        try:
            return HTTPStatus(self.status).phrase
        except ValueError:
            return "Unknown"

    @property
    def content_type(self) -> str | None:
        return self.headers.get(CONTENT_TYPE)

    def to_bytes(self) -> bytes:
        headers = {LAMPORT_CLOCK: str(self.clock), **self.headers}
        headers[CONTENT_LENGTH] = str(len(self.body))
        return _render(f"HTTP/1.1 {self.status} {self.reason}", headers, self.body)

    @classmethod
    def text(cls, status: int, clock: int, message: str) -> Response:
        return cls(
            status=status,
            clock=clock,
            body=message.encode(),
            headers={CONTENT_TYPE: "text/plain; charset=utf-8"},
        )
