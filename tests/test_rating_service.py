import pytest
from bson import ObjectId

from src.errors import ConflictError, InvalidScoreError, NotFoundError
from src.models.listing import Listing
from src.services import rating_ledger
from src.services.listing_service import ListingService
from src.services.rating_ledger import RatingService


async def _create_listing(user, fields) -> str:
    listing = await ListingService().create_listing(user, fields)
    return listing["id"]


async def test_rating_scenario_keeps_aggregate_in_sync(mongo_db, user_a, user_b, user_c, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    service = RatingService()

    first = await service.submit_rating(listing_id, user_b, score=4)
    second = await service.submit_rating(listing_id, user_c, score=2, comment="meh")
    assert first == {"action": "inserted", "average_rating": 4.0, "total_ratings": 1}
    assert (second["average_rating"], second["total_ratings"]) == (3.0, 2)

    replaced = await service.submit_rating(listing_id, user_b, score=5)
    assert replaced == {"action": "replaced", "average_rating": 3.5, "total_ratings": 2}

    removed = await service.delete_rating(listing_id, user_c)
    assert removed == {"average_rating": 5.0, "total_ratings": 1}

    stored = await mongo_db["listings"].find_one({"_id": ObjectId(listing_id)})
    assert stored["average_rating"] == 5.0
    assert stored["total_ratings"] == 1
    assert [rating["rater_user_id"] for rating in stored["ratings"]] == ["user-b"]
    assert stored["version"] == 4


async def test_get_ratings_returns_snapshot_names(mongo_db, user_a, user_b, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    service = RatingService()
    await service.submit_rating(listing_id, user_b, score=3, comment="fine")

    payload = await service.get_ratings(listing_id)

    assert payload["average_rating"] == 3.0
    assert payload["total_ratings"] == 1
    assert payload["ratings"][0]["rater_name"] == "Bob"
    assert payload["ratings"][0]["comment"] == "fine"


async def test_removing_last_rating_resets_aggregate(mongo_db, user_a, user_b, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    service = RatingService()
    await service.submit_rating(listing_id, user_b, score=1)

    assert await service.delete_rating(listing_id, user_b) == {"average_rating": 0.0, "total_ratings": 0}


async def test_invalid_and_missing_targets(mongo_db, user_a, user_b, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    service = RatingService()

    with pytest.raises(InvalidScoreError):
        await service.submit_rating(listing_id, user_b, score=6)
    with pytest.raises(NotFoundError):
        await service.submit_rating(str(ObjectId()), user_b, score=5)
    with pytest.raises(NotFoundError):
        await service.delete_rating(listing_id, user_b)


async def test_stale_writer_does_not_drop_concurrent_rating(mongo_db, user_a, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    parsed_id = ObjectId(listing_id)
    service = RatingService()
    document = await mongo_db["listings"].find_one({"_id": parsed_id})
    first_reader = Listing.from_document(document)
    second_reader = Listing.from_document(document)

    rating_ledger.upsert(first_reader, rater_id="user-b", rater_name="Bob", score=4)
    rating_ledger.upsert(second_reader, rater_id="user-c", rater_name="Carol", score=2)

    assert await service._save_ratings(parsed_id, first_reader, first_reader.version) is True
    assert await service._save_ratings(parsed_id, second_reader, second_reader.version) is False

    stored = await mongo_db["listings"].find_one({"_id": parsed_id})
    assert [rating["rater_user_id"] for rating in stored["ratings"]] == ["user-b"]
    assert stored["version"] == 1


async def test_legacy_document_without_version_is_writable(mongo_db, user_a, user_b, listing_fields) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    await mongo_db["listings"].update_one({"_id": ObjectId(listing_id)}, {"$unset": {"version": ""}})

    result = await RatingService().submit_rating(listing_id, user_b, score=5)

    assert result["total_ratings"] == 1
    stored = await mongo_db["listings"].find_one({"_id": ObjectId(listing_id)})
    assert stored["version"] == 1


async def test_write_gives_up_after_retries(mongo_db, user_a, user_b, listing_fields, monkeypatch) -> None:
    listing_id = await _create_listing(user_a, listing_fields)
    service = RatingService(max_retries=2)
    attempts = []

    async def always_stale(parsed_id, listing, expected_version) -> bool:
        attempts.append(expected_version)
        return False

    monkeypatch.setattr(service, "_save_ratings", always_stale)

    with pytest.raises(ConflictError):
        await service.submit_rating(listing_id, user_b, score=5)

    assert len(attempts) == 3
    stored = await mongo_db["listings"].find_one({"_id": ObjectId(listing_id)})
    assert stored["ratings"] == []
