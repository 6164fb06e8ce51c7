"""
Command-line entry point for the background workers.

Usage:
    hiring-worker export
    hiring-worker parser --once --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging
from typing import List, Optional

from .config import WorkerConfig
from .runner import WORKER_KINDS, run_worker, setup_logging

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="hiring-worker", description="Run a queue worker")
    parser.add_argument("kind", choices=WORKER_KINDS, help="Which queue to drain")
    parser.add_argument("--once", action="store_true", help="Run a single poll iteration and exit")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )
    args = parser.parse_args(argv)

    config = WorkerConfig.from_env()
    setup_logging(args.log_level or config.log_level)

    claimed = run_worker(args.kind, config, once=args.once)
    if args.once:
        logger.info("Single %s iteration claimed %s item(s)", args.kind, claimed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
