"""catalogsync unified entry point.

Run the scheduler (default):
    python -m catalogsync serve

One-off operations:
    python -m catalogsync sync
    python -m catalogsync low-stock --threshold 5
    python -m catalogsync retention --days 30
    python -m catalogsync init-db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


async def _run_command(args: argparse.Namespace) -> int:
    from .config import get_config
    from .exceptions import ControlError
    from .jobs import run_low_stock_check, run_retention
    from .runtime import build_runtime, serve

    config = get_config()

    if args.command == "serve":
        await serve(config)
        return 0

    runtime = build_runtime(config)
    try:
        if args.command == "init-db":
            await runtime.store.init_schema()
            return 0

        if args.command == "sync":
            try:
                result = await runtime.control.trigger_sync()
            except ControlError as e:
                print(json.dumps({"error": str(e)}), file=sys.stderr)
                return 1
            print(json.dumps(result, indent=2))
            return 0

        if args.command == "low-stock":
            threshold = (
                args.threshold if args.threshold is not None else config.low_stock_threshold
            )
            result = await run_low_stock_check(runtime.notifier, threshold)
            print(json.dumps(result.__dict__, indent=2))
            return 0 if result.success else 1

        if args.command == "retention":
            days = args.days if args.days is not None else config.retention_days
            result = await run_retention(runtime.store, retention_days=days)
            print(json.dumps(result, indent=2))
            return 0
    finally:
        await runtime.close()

    return 2


def main():
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="catalogsync: product catalog sync engine")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Run the job scheduler until interrupted")
    subparsers.add_parser("sync", help="Run one manual sync")
    subparsers.add_parser("init-db", help="Create database tables")

    low_stock = subparsers.add_parser("low-stock", help="Send the low stock alert")
    low_stock.add_argument("--threshold", type=int, default=None)

    retention = subparsers.add_parser("retention", help="Delete old ledger rows")
    retention.add_argument("--days", type=int, default=None)

    args = parser.parse_args()
    if args.command is None:
        args.command = "serve"

    from .config import get_config

    setup_logging(args.log_level or get_config().log_level)
    logger = logging.getLogger(__name__)

    try:
        sys.exit(asyncio.run(_run_command(args)))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
