import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.config import settings
from src.database import close_mongo_connection, connect_to_mongo
from src.jobs.backfill_slugs import SlugBackfillJob

LOGGER = logging.getLogger("backfill_listing_slugs")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Derive and store slugs for existing business listings.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute slugs and report without writing to MongoDB.",
    )
    parser.add_argument(
        "--after",
        default=None,
        help="Resume after this listing id (the last_id of a previous run).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Listings fetched per batch.",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print compact JSON output (single line).",
    )
    return parser.parse_args()


async def _run() -> int:
    args = _parse_args()
    try:
        job = SlugBackfillJob(dry_run=args.dry_run, after_id=args.after, batch_size=args.batch_size)
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2

    try:
        await connect_to_mongo()
    except Exception:  # noqa: BLE001
        LOGGER.exception("Migration failed: could not connect to MongoDB")
        return 1

    try:
        report = await job.run()
    finally:
        await close_mongo_connection()

    payload = report.to_dict()
    if args.compact:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    sys.exit(asyncio.run(_run()))
