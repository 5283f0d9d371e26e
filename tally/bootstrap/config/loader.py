import argparse
import os
from pathlib import Path

CONFIG_ENV = "TALLY_CONFIG"
DEFAULT_CONFIG = "config.yaml"


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tally",
        description=(
            "Start a Tally aggregation server.\n\n"
            "Content sources PUT readings under their own identity, readers GET the "
            "latest aggregated view. Events are ordered with a Lamport clock, readings "
            "expire after a fixed age, and the store is snapshotted to disk."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "-c", "--config",
        type=str,
        help=(
            "Path to a Tally configuration file (YAML).\n"
            f"Defaults to ${CONFIG_ENV}, then './{DEFAULT_CONFIG}' when present."
        )
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help=(
            "Bind address, overrides server.host from the configuration.\n"
            "Examples:\n"
            " --host 0.0.0.0 (listen on all interfaces)\n"
            " --host 127.0.0.1 (listen only locally)"
        ),
    )

    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=None,
        help="TCP port, overrides server.port from the configuration (default 4567).",
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=(
            "Logging verbosity.\n"
            "DEBUG    → per-connection tracing.\n"
            "INFO     → startup, publishes, evictions (default).\n"
            "WARNING  → only warnings and errors."
        ),
    )

    return parser.parse_args(argv)


def get_configfile(raw: str | None) -> Path | None:
    # Priority: CLI > ENV > default file in current working directory
    raw = raw or os.getenv(CONFIG_ENV)

    if raw is None:
        file = Path.cwd() / DEFAULT_CONFIG
        return file if file.is_file() else None

    file = Path(raw)
    if not file.is_file():
        raise SystemExit(
            f"[config] Configuration file not found: '{file}'.\n"
            "  - Use --config <file.yaml>\n"
            f"  - Or set the {CONFIG_ENV} environment variable\n"
            f"  - Or place a '{DEFAULT_CONFIG}' file in the current working directory."
        )

    return file
