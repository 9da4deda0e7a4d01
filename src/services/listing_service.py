from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from src.config import settings
from src.database import LISTINGS_COLLECTION, USERS_COLLECTION, get_database
from src.errors import DuplicateOwnershipError, NotFoundError, StorageError, ValidationError
from src.models.listing import LISTING_FIELDS, Curated, Listing, SelfAuthored, utcnow
from src.services.access_guard import Actor, ensure_can_mutate
from src.services.query_composer import ListingQuery
from src.services.slug import build_listing_slug

LOGGER = logging.getLogger(__name__)

_NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]
_DUPLICATE_OWNERSHIP_MESSAGE = "You already have a business listing. Please edit your existing listing."


class ListingService:
    async def create_listing(self, actor: Actor, fields: dict[str, Any]) -> dict:
        values = self._require_all_fields(fields)
        listings = get_database()[LISTINGS_COLLECTION]

        if actor.is_admin:
            authorship: SelfAuthored | Curated = Curated(curator_id=actor.id)
        else:
            existing = await listings.find_one(self._own_listing_filter(actor.id), projection={"_id": 1})
            if existing is not None:
                raise DuplicateOwnershipError(_DUPLICATE_OWNERSHIP_MESSAGE)
            authorship = SelfAuthored(owner_id=actor.id)

        now = utcnow()
        listing = Listing(
            authorship=authorship,
            slug=build_listing_slug(values["city"], values["category"], values["business_name"]),
            created_at=now,
            updated_at=now,
            **values,
        )
        try:
            inserted = await listings.insert_one(listing.to_document())
        except DuplicateKeyError as exc:
            # The unique owner index caught a create racing past the lookup above.
            LOGGER.warning("Duplicate self listing rejected by index actor=%s", actor.id)
            raise DuplicateOwnershipError(_DUPLICATE_OWNERSHIP_MESSAGE) from exc
        listing.id = str(inserted.inserted_id)
        LOGGER.info(
            "Listing created id=%s actor=%s curated=%s slug=%s",
            listing.id,
            actor.id,
            listing.is_admin_listing,
            listing.slug,
        )
        return listing.to_view()

    async def find_listings(self, query: ListingQuery | None = None) -> list[dict]:
        listing_filter = (query or ListingQuery()).to_filter()
        return await self._find_views(listing_filter)

    async def find_admin_listings(self, public_only: bool = False) -> list[dict]:
        # Public and admin callers see the same curated set.
        LOGGER.debug("Curated listings requested public_only=%s", public_only)
        return await self._find_views({"authorship.kind": "curated"})

    async def find_by_slug(self, slug: str) -> list[dict]:
        cleaned = str(slug or "").strip().strip("/").lower()
        if not cleaned:
            raise ValidationError("Slug is required.")
        return await self._find_views({"slug": cleaned})

    async def find_all_with_owners(self) -> list[dict]:
        database = get_database()
        listing_docs = await database[LISTINGS_COLLECTION].find({}).sort(_NEWEST_FIRST).to_list(length=None)
        listings = self._decode_readable(listing_docs)

        owner_ids = {listing.owner_id for listing in listings}
        lookup_ids: list[Any] = []
        for owner_id in owner_ids:
            lookup_ids.append(owner_id)
            try:
                lookup_ids.append(ObjectId(owner_id))
            except (InvalidId, TypeError):
                continue

        owners_by_id: dict[str, dict[str, Any]] = {}
        if lookup_ids:
            user_docs = await (
                database[USERS_COLLECTION]
                .find({"_id": {"$in": lookup_ids}}, projection={"name": 1, "email": 1})
                .to_list(length=None)
            )
            owners_by_id = {
                str(doc["_id"]): {"id": str(doc["_id"]), "name": doc.get("name", ""), "email": doc.get("email", "")}
                for doc in user_docs
            }

        items = []
        for listing in listings:
            view = listing.to_view()
            view["owner"] = owners_by_id.get(listing.owner_id)
            items.append(view)
        return items

    async def find_own_listing(self, actor: Actor) -> dict | None:
        listings = get_database()[LISTINGS_COLLECTION]
        document = await listings.find_one(self._own_listing_filter(actor.id))
        if document is None:
            return None
        return Listing.from_document(document).to_view()

    async def update_listing(self, listing_id: str, actor: Actor, fields: dict[str, Any]) -> dict:
        parsed_id = self._parse_object_id(listing_id)
        listings = get_database()[LISTINGS_COLLECTION]
        changes = self._present_fields(fields)
        document = await listings.find_one({"_id": parsed_id})
        if document is None:
            raise NotFoundError(f"Listing '{listing_id}' not found.")
        # Decoding with the changes applied lets an edit fill fields a stored record lacks.
        listing = Listing.from_document({**document, **changes})
        ensure_can_mutate(actor, listing)

        if settings.reslug_on_update and changes.keys() & {"city", "category", "business_name"}:
            listing.slug = build_listing_slug(listing.city, listing.category, listing.business_name)
            changes["slug"] = listing.slug

        listing.updated_at = utcnow()
        changes["updated_at"] = listing.updated_at
        result = await listings.update_one({"_id": parsed_id}, {"$set": changes})
        if result.matched_count == 0:
            raise NotFoundError(f"Listing '{listing_id}' not found.")

        LOGGER.info("Listing updated id=%s actor=%s fields=%s", listing_id, actor.id, sorted(changes))
        return listing.to_view()

    async def delete_listing(self, listing_id: str, actor: Actor) -> None:
        parsed_id = self._parse_object_id(listing_id)
        listings = get_database()[LISTINGS_COLLECTION]
        listing = await self._load_listing(parsed_id, listing_id)
        ensure_can_mutate(actor, listing)

        result = await listings.delete_one({"_id": parsed_id})
        if result.deleted_count == 0:
            raise NotFoundError(f"Listing '{listing_id}' not found.")
        LOGGER.info("Listing deleted id=%s actor=%s ratings=%s", listing_id, actor.id, listing.total_ratings)

    async def _find_views(self, listing_filter: dict[str, Any]) -> list[dict]:
        listings = get_database()[LISTINGS_COLLECTION]
        documents = await listings.find(listing_filter).sort(_NEWEST_FIRST).to_list(length=None)
        return [listing.to_view() for listing in self._decode_readable(documents)]

    def _decode_readable(self, documents: list[dict[str, Any]]) -> list[Listing]:
        decoded = []
        for document in documents:
            try:
                decoded.append(Listing.from_document(document))
            except StorageError:
                LOGGER.warning("Skipping unreadable listing id=%s", document.get("_id"))
        return decoded

    async def _load_listing(self, parsed_id: ObjectId, listing_id: str) -> Listing:
        document = await get_database()[LISTINGS_COLLECTION].find_one({"_id": parsed_id})
        if document is None:
            raise NotFoundError(f"Listing '{listing_id}' not found.")
        return Listing.from_document(document)

    def _own_listing_filter(self, owner_id: str) -> dict[str, Any]:
        return {"authorship.kind": "self", "authorship.owner_id": owner_id}

    def _require_all_fields(self, fields: dict[str, Any]) -> dict[str, str]:
        values = self._present_fields(fields)
        if any(name not in values for name in LISTING_FIELDS):
            raise ValidationError("Please fill all fields")
        return values

    def _present_fields(self, fields: dict[str, Any]) -> dict[str, str]:
        values: dict[str, str] = {}
        for name in LISTING_FIELDS:
            raw = fields.get(name)
            if raw is None:
                continue
            cleaned = str(raw).strip()
            if cleaned:
                values[name] = cleaned
        return values

    def _parse_object_id(self, value: str) -> ObjectId:
        try:
            return ObjectId(str(value))
        except (InvalidId, TypeError) as exc:
            raise ValidationError("Invalid listing_id. Expected a Mongo ObjectId string.") from exc
