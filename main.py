# ============================================================================
# CARGO CRON - MAIN ENTRY POINT
# ============================================================================
# STATUS: Core - Command line entry point
# PURPOSE: Dispatch cron commands under a per-command run lock
# CREATED: 18 OCT 2026
# ============================================================================
"""
Cargo Cron Main Entry Point

Commands:
    pin-dags [--skip-dags-aged N]   pin and analyze DAGs that have no size yet
    export-status                   publish deal status summaries to Workers KV

Each command runs under a PostgreSQL advisory lock named after it, so a
cron overlap exits instead of doing the work twice.

Usage:
    cargo-cron pin-dags --skip-dags-aged 3
    python main.py export-status

Environment Variables:
    DATABASE_URL: PostgreSQL connection
    IPFS_API: IPFS HTTP API base URL
    CF_ACCOUNT_ID, CF_API_TOKEN, CF_KVNAMESPACE_DEALS: Workers KV access
    LOG_LEVEL: Log level (default INFO)
    LOG_FORMAT: "json" for structured output
"""

import argparse
import asyncio
import os
import signal
import sys
import time
from dataclasses import replace
from typing import List, Optional

from __version__ import __version__
from core.config import CargoConfig, DatabaseConfig, get_config
from core.logging import configure_logging, get_logger, log_context
from infrastructure import IpfsClient, LockNotAcquired, RunLock, WorkersKVClient
from repositories import DagRepository, DatabasePool, ExportRepository
from services import DEFAULT_SKIP_DAGS_AGED, ExportService, PinService

logger = get_logger(__name__)


# ============================================================================
# COMMANDS
# ============================================================================

async def pin_dags(pool, config: CargoConfig, args, cancel_event: asyncio.Event) -> None:
    async with IpfsClient(config.ipfs) as ipfs:
        service = PinService(DagRepository(pool), ipfs, config)
        await service.run(skip_dags_aged=args.skip_dags_aged, cancel_event=cancel_event)


async def export_status(pool, config: CargoConfig, args, cancel_event: asyncio.Event) -> None:
    async with WorkersKVClient(config.kv) as kv:
        service = ExportService(ExportRepository(pool), kv, config)
        await service.run(cancel_event=cancel_event)


COMMANDS = {
    "pin-dags": pin_dags,
    "export-status": export_status,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cargo-cron",
        description="Periodic DAG analysis and deal-status export jobs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    pin = sub.add_parser("pin-dags", help="Pin and analyze DAGs without a recorded size")
    pin.add_argument(
        "--skip-dags-aged",
        type=int,
        default=DEFAULT_SKIP_DAGS_AGED,
        metavar="DAYS",
        help=f"Skip DAGs last updated more than DAYS days ago (default: {DEFAULT_SKIP_DAGS_AGED})",
    )

    sub.add_parser("export-status", help="Publish deal status summaries to Workers KV")

    return parser


# ============================================================================
# RUN WRAPPER
# ============================================================================

def database_config_for(command: str, config: CargoConfig) -> DatabaseConfig:
    """
    Pool settings for a command.

    pin-dags gets one connection per worker plus the run lock and one
    spare, so workers never wait on each other for a connection.
    """
    if command != "pin-dags":
        return config.database
    needed = config.ipfs.max_workers + 2
    if config.database.max_pool_size >= needed:
        return config.database
    return replace(config.database, max_pool_size=needed)


async def execute(
    args: argparse.Namespace,
    config: CargoConfig,
    cancel_event: Optional[asyncio.Event] = None,
) -> int:
    """
    Run one command under its run lock.

    Returns:
        Process exit code
    """
    cancel_event = cancel_event or asyncio.Event()
    command = args.command

    with log_context(run=command):
        try:
            async with DatabasePool(database_config_for(command, config)) as pool:
                return await _run_locked(pool, args, config, cancel_event)
        except Exception as e:
            logger.exception(f"'{command}' run could not start: {e}")
            return 1


async def _run_locked(pool, args, config: CargoConfig, cancel_event: asyncio.Event) -> int:
    command = args.command
    handler = COMMANDS[command]

    lock = RunLock(pool, command)
    try:
        await lock.acquire()
    except LockNotAcquired as e:
        # overlapping cron invocations are routine
        if sys.stdin.isatty():
            logger.error(f"Another '{command}' run is in progress: {e}")
        return 1

    started = time.monotonic()
    success = False
    logger.info(f"=== BEGIN '{command}' run")
    try:
        await handler(pool, config, args, cancel_event)
        success = True
    except Exception as e:
        logger.exception(f"'{command}' run failed: {e}")
    finally:
        logger.info(
            f"=== FINISH '{command}' run",
            extra={"success": success, "took": f"{time.monotonic() - started:.3f}s"},
        )
        await lock.release()

    return 0 if success else 1


async def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, install signal handlers and run the command."""
    args = build_parser().parse_args(argv)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, cancel_event.set)

    return await execute(args, get_config(), cancel_event)


def run() -> None:
    """Synchronous entry point."""
    configure_logging(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        json_output=os.environ.get("LOG_FORMAT", "").lower() == "json",
    )
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
