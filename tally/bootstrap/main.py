import asyncio
import logging

from tally.bootstrap.builder import ServerBuilder
from tally.bootstrap.config.loader import get_configfile, parse_cli_args
from tally.bootstrap.config.settings import load_config
from tally.core.server import Server
from tally.core.utils.log import setup_logging


def run(server: Server, loop: asyncio.AbstractEventLoop | None = None) -> None:
    if loop is None:
        loop = asyncio.new_event_loop()

    try:
        loop.run_until_complete(server.serve())
    except KeyboardInterrupt:
        pass
    finally:
        try:
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.run_until_complete(loop.shutdown_default_executor())
        finally:
            loop.close()


def entrypoint(argv: list[str] | None = None) -> None:
    args = parse_cli_args(argv)
    setup_logging(args.log_level)

    configfile = get_configfile(args.config)
    config = load_config(configfile)
    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port

    logging.getLogger("tally.bootstrap").info(
        f"Configuration loaded from {configfile or 'environment and defaults'}"
    )

    run(ServerBuilder(config).build())
