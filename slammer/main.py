#!/usr/bin/env python3
"""
Slammer - command-line entry point.

Reads SQL statements from stdin, one per line, and replays them against a
database through a pool of concurrent workers, then prints per-worker
throughput and error statistics.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence, TextIO

from uvicorn.logging import DefaultFormatter

from slammer.config import settings
from slammer.connectors import open_database
from slammer.core.cancellation import CancellationToken
from slammer.core.dispatcher import Dispatcher
from slammer.core.log_context import WorkerContextFilter
from slammer.exceptions import ConfigError, DriverError
from slammer.models import RunConfig, RunReport, build_run_config

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DRIVER_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def configure_logging(level: str) -> None:
    # Coloured "LEVEL:" prefix on stderr, same formatter as uvicorn's console.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(DefaultFormatter(fmt=settings.LOG_FORMAT, use_colors=None))
    handler.addFilter(WorkerContextFilter())

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )

    # Suppress verbose Snowflake connector internal logging
    logging.getLogger("snowflake.connector").setLevel(logging.WARNING)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slammer",
        description=(
            "Replay SQL statements read from stdin (one per line) against a "
            "database using a pool of concurrent workers."
        ),
    )
    parser.add_argument(
        "-p",
        "--pause",
        default=settings.SLAMMER_PAUSE,
        help="The time to pause between each call to the database (e.g. 250ms, 1s).",
    )
    parser.add_argument(
        "-c",
        "--connection",
        default=settings.SLAMMER_CONNECTION_STRING,
        help="The connection string to use when connecting to the database.",
    )
    parser.add_argument(
        "-db",
        "--db",
        "--driver",
        dest="driver",
        default=settings.SLAMMER_DRIVER,
        help="The database driver to load: mysql (default), postgres or snowflake.",
    )
    parser.add_argument(
        "-w",
        "--workers",
        type=int,
        default=settings.SLAMMER_WORKERS,
        help="The number of workers to use. More than 1 issues statements concurrently.",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        default=settings.SLAMMER_DEBUG,
        help="Debug mode - log statement and input errors to stderr.",
    )
    parser.add_argument(
        "--max-read-errors",
        type=int,
        default=settings.SLAMMER_MAX_READ_ERRORS,
        help="Consecutive input read errors tolerated before input is abandoned.",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=("text", "json"),
        default="text",
        help="Report format written to stdout.",
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Logging level for stderr output (default from LOG_LEVEL).",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return build_run_config(
        connection_string=args.connection,
        driver=args.driver,
        pause=args.pause,
        workers=args.workers,
        debug=args.debug,
        max_read_errors=args.max_read_errors,
        output_format=args.output_format,
    )


def render_report(report: RunReport, output_format: str) -> str:
    if output_format == "json":
        return report.render_json()
    return report.render_text()


async def run(config: RunConfig, *, stream: TextIO, out: TextIO) -> int:
    """Run one load session and write the report to `out`."""
    database = open_database(config)
    cancel = CancellationToken()
    cancel.install_signal_handlers()
    try:
        await database.initialize()
        report = await Dispatcher(config, database, cancel, stream=stream).run()
    finally:
        cancel.remove_signal_handlers()
        try:
            await database.close()
        except Exception as exc:
            logger.warning("Failed to close database handle: %s", exc)

    out.write(render_report(report, config.output_format) + "\n")
    out.flush()
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        config = config_from_args(args)
    except ConfigError as exc:
        print(f"slammer: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        return asyncio.run(run(config, stream=sys.stdin, out=sys.stdout))
    except DriverError as exc:
        print(f"slammer: {exc}", file=sys.stderr)
        return EXIT_DRIVER_ERROR
    except KeyboardInterrupt:
        print("[slammer] interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
