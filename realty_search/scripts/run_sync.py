#!/usr/bin/env python3
"""
Index Sync Script
Runs one sync pass from the primary store into the search index.

Usage:
    python -m realty_search.scripts.run_sync
    python -m realty_search.scripts.run_sync --force --batch-size 500
"""

import argparse
import json
import logging
import sys

from realty_search.config import get_settings
from realty_search.errors import ConfigurationError, RealtySearchError
from realty_search.sync.factory import build_sync_engine

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync listings into the search index")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Reset the cursor and resync every listing",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Rows per batch (default: SYNC_BATCH_SIZE)",
    )
    parser.add_argument(
        "--no-lease",
        action="store_true",
        help="Run without the Redis run lease",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main function to run one sync pass."""
    args = parse_args(argv)

    if args.batch_size is not None and args.batch_size < 1:
        logger.error("--batch-size must be >= 1")
        return 2

    try:
        settings = get_settings()
    except ConfigurationError as e:
        logger.error(str(e))
        return 2

    logger.info(
        f"Starting sync of '{settings.typesense_collection}' "
        f"(force={args.force}, batch_size={args.batch_size or settings.sync_batch_size})"
    )

    try:
        engine = build_sync_engine(
            settings,
            batch_size=args.batch_size,
            use_lease=False if args.no_lease else None,
        )
        summary = engine.run(force=args.force)
    except RealtySearchError as e:
        logger.error(f"Sync failed: {e}")
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
