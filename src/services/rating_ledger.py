from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, TypeVar

from bson import ObjectId
from bson.errors import InvalidId

from src.config import settings
from src.database import LISTINGS_COLLECTION, get_database
from src.errors import ConflictError, InvalidScoreError, NotFoundError, ValidationError
from src.models.listing import Listing, Rating, RatingAggregate, utcnow
from src.services.access_guard import Actor

LOGGER = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5

T = TypeVar("T")


class LedgerAction(str, Enum):
    INSERTED = "inserted"
    REPLACED = "replaced"


@dataclass(frozen=True)
class LedgerResult:
    action: LedgerAction
    aggregate: RatingAggregate


def validate_score(score: object) -> int:
    if isinstance(score, bool) or not isinstance(score, int) or not MIN_SCORE <= score <= MAX_SCORE:
        raise InvalidScoreError(f"Rating must be between {MIN_SCORE} and {MAX_SCORE}")
    return score


def upsert(
    listing: Listing,
    *,
    rater_id: str,
    rater_name: str | None,
    score: object,
    comment: str | None = None,
) -> LedgerResult:
    valid_score = validate_score(score)
    comment_value = str(comment or "")

    for rating in listing.ratings:
        if rating.rater_user_id == rater_id:
            rating.score = valid_score
            rating.comment = comment_value
            rating.created_at = utcnow()
            return LedgerResult(action=LedgerAction.REPLACED, aggregate=listing.refresh_aggregate())

    listing.ratings.append(
        Rating(
            rater_user_id=rater_id,
            rater_name=str(rater_name or "").strip() or "Anonymous",
            score=valid_score,
            comment=comment_value,
        )
    )
    return LedgerResult(action=LedgerAction.INSERTED, aggregate=listing.refresh_aggregate())


def remove(listing: Listing, *, rater_id: str) -> RatingAggregate:
    remaining = [rating for rating in listing.ratings if rating.rater_user_id != rater_id]
    if len(remaining) == len(listing.ratings):
        raise NotFoundError("Rating not found")
    listing.ratings = remaining
    return listing.refresh_aggregate()


def list_ratings(listing: Listing) -> tuple[list[Rating], RatingAggregate]:
    ordered = sorted(listing.ratings, key=lambda rating: rating.created_at, reverse=True)
    return ordered, listing.aggregate


class RatingService:
    def __init__(self, max_retries: int | None = None) -> None:
        retries = settings.rating_write_max_retries if max_retries is None else max_retries
        self._max_retries = max(0, int(retries))

    async def submit_rating(
        self,
        listing_id: str,
        actor: Actor,
        *,
        score: object,
        comment: str | None = None,
    ) -> dict:
        validate_score(score)

        def mutate(listing: Listing) -> LedgerResult:
            return upsert(listing, rater_id=actor.id, rater_name=actor.name, score=score, comment=comment)

        result = await self._write(listing_id, mutate)
        LOGGER.info(
            "Rating %s listing=%s rater=%s average=%s total=%s",
            result.action.value,
            listing_id,
            actor.id,
            result.aggregate.average_rating,
            result.aggregate.total_ratings,
        )
        return {
            "action": result.action.value,
            "average_rating": result.aggregate.average_rating,
            "total_ratings": result.aggregate.total_ratings,
        }

    async def get_ratings(self, listing_id: str) -> dict:
        listing = await self._load(self._parse_object_id(listing_id), listing_id)
        ratings, aggregate = list_ratings(listing)
        return {
            "ratings": [rating.model_dump(mode="json") for rating in ratings],
            "average_rating": aggregate.average_rating,
            "total_ratings": aggregate.total_ratings,
        }

    async def delete_rating(self, listing_id: str, actor: Actor) -> dict:
        aggregate = await self._write(listing_id, lambda listing: remove(listing, rater_id=actor.id))
        LOGGER.info("Rating removed listing=%s rater=%s total=%s", listing_id, actor.id, aggregate.total_ratings)
        return {
            "average_rating": aggregate.average_rating,
            "total_ratings": aggregate.total_ratings,
        }

    async def _write(self, listing_id: str, mutate: Callable[[Listing], T]) -> T:
        parsed_id = self._parse_object_id(listing_id)
        attempts = self._max_retries + 1
        for attempt in range(1, attempts + 1):
            listing = await self._load(parsed_id, listing_id)
            expected_version = listing.version
            outcome = mutate(listing)
            if await self._save_ratings(parsed_id, listing, expected_version):
                return outcome
            LOGGER.warning(
                "Rating write conflict listing=%s version=%s attempt=%s/%s",
                listing_id,
                expected_version,
                attempt,
                attempts,
            )
        raise ConflictError(f"Listing '{listing_id}' is being rated concurrently. Please retry.")

    async def _save_ratings(self, parsed_id: ObjectId, listing: Listing, expected_version: int) -> bool:
        listings = get_database()[LISTINGS_COLLECTION]
        version_filter: dict[str, Any] = {"_id": parsed_id, "version": expected_version}
        if expected_version == 0:
            # Documents written before versioning carry no version field.
            version_filter = {
                "_id": parsed_id,
                "$or": [{"version": 0}, {"version": {"$exists": False}}],
            }
        result = await listings.update_one(
            version_filter,
            {
                "$set": {
                    "ratings": [rating.model_dump(mode="python") for rating in listing.ratings],
                    "average_rating": listing.average_rating,
                    "total_ratings": listing.total_ratings,
                    "version": expected_version + 1,
                }
            },
        )
        return result.matched_count == 1

    async def _load(self, parsed_id: ObjectId, listing_id: str) -> Listing:
        document = await get_database()[LISTINGS_COLLECTION].find_one({"_id": parsed_id})
        if document is None:
            raise NotFoundError(f"Listing '{listing_id}' not found.")
        return Listing.from_document(document)

    def _parse_object_id(self, value: str) -> ObjectId:
        try:
            return ObjectId(str(value))
        except (InvalidId, TypeError) as exc:
            raise ValidationError("Invalid listing_id. Expected a Mongo ObjectId string.") from exc
