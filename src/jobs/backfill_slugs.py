from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING

from src.config import settings
from src.database import LISTINGS_COLLECTION, get_database
from src.services.slug import build_listing_slug

LOGGER = logging.getLogger(__name__)


@dataclass
class BackfillRecordError:
    listing_id: str
    business_name: str
    error: str


@dataclass
class BackfillReport:
    dry_run: bool = False
    processed: int = 0
    succeeded: int = 0
    unchanged: int = 0
    failed: int = 0
    last_id: str | None = None
    errors: list[BackfillRecordError] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SlugBackfillJob:
    """Derive and store slugs for every existing listing.

    Records are visited in ``_id`` order in batches. A failing record is
    logged and counted and the run moves on. ``after_id`` resumes a previous
    run from its reported ``last_id``; ``dry_run`` computes slugs without
    writing them.
    """

    def __init__(self, *, dry_run: bool = False, after_id: str | None = None, batch_size: int | None = None) -> None:
        self._dry_run = bool(dry_run)
        self._after_id = self._parse_cursor(after_id)
        size = settings.backfill_batch_size if batch_size is None else batch_size
        self._batch_size = max(1, int(size))

    async def run(self) -> BackfillReport:
        listings = get_database()[LISTINGS_COLLECTION]
        report = BackfillReport(dry_run=self._dry_run)
        cursor_id = self._after_id

        LOGGER.info("Slug backfill started dry_run=%s after=%s", self._dry_run, cursor_id)
        while True:
            documents = (
                await listings.find(self._batch_filter(cursor_id))
                .sort([("_id", ASCENDING)])
                .limit(self._batch_size)
                .to_list(length=self._batch_size)
            )
            if not documents:
                break

            for document in documents:
                await self._process_document(listings, document, report)
                cursor_id = document["_id"]
                report.last_id = str(cursor_id)

        LOGGER.info(
            "Slug backfill completed processed=%s succeeded=%s unchanged=%s failed=%s",
            report.processed,
            report.succeeded,
            report.unchanged,
            report.failed,
        )
        return report

    async def _process_document(self, listings, document: dict[str, Any], report: BackfillReport) -> None:
        listing_id = str(document.get("_id"))
        business_name = str(document.get("business_name") or "")
        report.processed += 1
        try:
            slug = build_listing_slug(document.get("city"), document.get("category"), document.get("business_name"))
            if document.get("slug") == slug:
                report.unchanged += 1
            elif not self._dry_run:
                await listings.update_one({"_id": document["_id"]}, {"$set": {"slug": slug}})
            report.succeeded += 1
            LOGGER.info("Slug %s id=%s %r -> %s", "checked" if self._dry_run else "set", listing_id, business_name, slug)
        except Exception as exc:  # noqa: BLE001
            report.failed += 1
            report.errors.append(BackfillRecordError(listing_id=listing_id, business_name=business_name, error=str(exc)))
            LOGGER.error("Slug backfill failed id=%s %r: %s", listing_id, business_name, exc)

    def _batch_filter(self, cursor_id: Any) -> dict[str, Any]:
        if cursor_id is None:
            return {}
        if isinstance(cursor_id, ObjectId):
            return {"_id": {"$gt": cursor_id}}
        # Legacy string ids sort before ObjectIds and $gt never crosses types.
        return {"$or": [{"_id": {"$gt": cursor_id}}, {"_id": {"$type": "objectId"}}]}

    def _parse_cursor(self, after_id: str | None) -> ObjectId | None:
        if after_id is None or not str(after_id).strip():
            return None
        try:
            return ObjectId(str(after_id).strip())
        except (InvalidId, TypeError) as exc:
            raise ValueError("Invalid cursor. Expected a Mongo ObjectId string.") from exc
