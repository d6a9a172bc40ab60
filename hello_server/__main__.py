"""
Command-line entry point: python -m hello_server

Settings come from the environment (HOST, PORT, SHUTDOWN_TIMEOUT, LOG_LEVEL,
ACCESS_LOG); flags given here take precedence.

Exit codes:
    0  clean shutdown after SIGINT/SIGTERM
    1  bind failure, invalid configuration, startup failure or forced exit
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from pydantic import ValidationError

from hello_server import __version__
from hello_server.config import LOG_LEVELS, Settings
from hello_server.lifecycle import ServerProcess
from hello_server.main import app

logger = logging.getLogger("hello_server")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hello-server",
        description="Log request headers and answer GET / with a fixed greeting",
    )
    parser.add_argument("--host", "-H", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="TCP port to bind (default: 8080)")
    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        help="Seconds to wait for the listener to close before forcing exit (default: 10)",
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging verbosity (default: INFO)",
    )
    parser.add_argument(
        "--no-access-log",
        dest="access_log",
        action="store_const",
        const=False,
        help="Disable the per-request access log",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env().with_overrides(
        host=args.host,
        port=args.port,
        shutdown_timeout=args.shutdown_timeout,
        log_level=args.log_level,
        access_log=args.access_log,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        return 1

    logging.basicConfig(level=settings.log_level)
    process = ServerProcess(app, settings)
    exit_code = asyncio.run(process.run())

    if process.forced:
        # Threads still running request handlers would block interpreter exit
        logging.shutdown()
        os._exit(exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
