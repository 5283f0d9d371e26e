import argparse
import asyncio
import sys
from pathlib import Path

from tally.core.clock import LamportClock
from tally.core.utils.log import setup_logging
from tally.core.utils.retry import BackoffRetry
from tallyctl.commands import fetch, publish, render
from tallyctl.parser import ParseError, parse_address, parse_data_file


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tallyctl",
        description="Tally clients: publish a reading or fetch the aggregated view."
    )
    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )

    commands = parser.add_subparsers(dest="command", required=True)

    put = commands.add_parser(
        "publish",
        help="Send a reading read from a 'key: value' data file."
    )
    put.add_argument("address", help="host:port or http://host:port/path")
    put.add_argument("datafile", type=Path, help="Data file, one 'key: value' per line, must contain 'id'")
    put.add_argument(
        "--retry-delay",
        type=float,
        default=2.0,
        help="Seconds to wait between connection attempts (default 2)."
    )
    put.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Give up after this many failed attempts (default: retry forever)."
    )

    get = commands.add_parser("fetch", help="Print every reading held by the aggregator.")
    get.add_argument("address", help="host:port or http://host:port/path")

    return parser.parse_args(argv)


async def run_publish(args: argparse.Namespace) -> int:
    host, port, path = parse_address(args.address)
    reading = parse_data_file(args.datafile)
    retry = BackoffRetry(initial=args.retry_delay, max_attempts=args.max_retries)

    try:
        response = await publish(host, port, reading, LamportClock(), retry=retry, path=path)
    except (OSError, asyncio.IncompleteReadError) as exc:
        print(f"Error: aggregator unreachable at {host}:{port}: {exc}")
        return 1

    print(render(response))
    return 0 if response.status < 400 else 1


async def run_fetch(args: argparse.Namespace) -> int:
    host, port, path = parse_address(args.address)

    try:
        response = await fetch(host, port, LamportClock(), path=path)
    except (OSError, asyncio.IncompleteReadError) as exc:
        print(f"Error: aggregator unreachable at {host}:{port}: {exc}")
        return 1

    print(render(response))
    return 0 if response.status < 400 else 1


def entrypoint(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    runner = run_publish if args.command == "publish" else run_fetch
    try:
        return asyncio.run(runner(args))
    except ParseError as exc:
        print(f"Error: {exc}")
        return 2


def main() -> None:
    sys.exit(entrypoint())
