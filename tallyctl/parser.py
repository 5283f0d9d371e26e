from pathlib import Path
from typing import Iterable
from urllib.parse import urlsplit

from tally.core.model.reading import IDENTITY_FIELD, Reading

DEFAULT_PATH = "/weather.json"
DEFAULT_PORT = 80


class ParseError(Exception):
    pass


def parse_reading_lines(lines: Iterable[str]) -> Reading:
    """
    Build a reading from `key: value` lines.

    Lines without a ':' are ignored; only the first ':' separates key and
    value, so values may contain colons. Later duplicates win.
    """
    reading: Reading = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        reading[key] = value.strip()

    if not reading.get(IDENTITY_FIELD):
        raise ParseError(f"Data file must contain '{IDENTITY_FIELD}' field.")

    return reading


def parse_data_file(path: Path) -> Reading:
    try:
        with path.open("r", encoding="utf-8") as f:
            return parse_reading_lines(f)
    except OSError as exc:
        raise ParseError(f"Cannot read data file {path}: {exc}") from exc


def parse_address(raw: str) -> tuple[str, int, str]:
    """
    Split `host:port`, `http://host:port` or `http://host:port/path`
    into (host, port, path).
    """
    if "://" not in raw:
        raw = f"http://{raw}"

    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as exc:
        raise ParseError(f"Invalid address '{raw}': {exc}") from exc

    if not parts.hostname:
        raise ParseError(f"Invalid address '{raw}': missing host")

    return parts.hostname, port or DEFAULT_PORT, parts.path or DEFAULT_PATH
