from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict

from src.services.access_guard import Actor
from src.services.auth import get_current_actor, get_current_admin
from src.services.listing_service import ListingService
from src.services.query_composer import ListingQuery

router = APIRouter(prefix="/listings")


class ListingPayload(BaseModel):
    business_name: str | None = None
    category: str | None = None
    description: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    image: str | None = None

    model_config = ConfigDict(extra="forbid")


def _fields(payload: ListingPayload) -> dict:
    return payload.model_dump(exclude_none=True)


@router.post("", status_code=status.HTTP_201_CREATED, tags=["Listings"])
async def create_listing(payload: ListingPayload, actor: Actor = Depends(get_current_actor)) -> dict:
    service = ListingService()
    try:
        listing = await service.create_listing(actor, _fields(payload))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"message": "Business listing created successfully", "listing": listing}


@router.post("/admin", status_code=status.HTTP_201_CREATED, tags=["Admin"])
async def create_admin_listing(payload: ListingPayload, admin: Actor = Depends(get_current_admin)) -> dict:
    service = ListingService()
    try:
        listing = await service.create_listing(admin, _fields(payload))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return {"message": "Business listing created successfully by admin", "listing": listing}


@router.get("", tags=["Listings"])
async def search_listings(
    search: str | None = Query(default=None),
    category: str | None = Query(default=None),
    city: str | None = Query(default=None),
) -> list[dict]:
    service = ListingService()
    query = ListingQuery.from_terms(search=search, category=category, city=city)
    return await service.find_listings(query)


@router.get("/admin/listings", tags=["Admin"])
async def list_admin_listings(_: Actor = Depends(get_current_admin)) -> list[dict]:
    return await ListingService().find_admin_listings(public_only=False)


@router.get("/admin/public-listings", tags=["Listings"])
async def list_public_admin_listings() -> list[dict]:
    return await ListingService().find_admin_listings(public_only=True)


@router.get("/admin/all", tags=["Admin"])
async def list_all_listings_with_owners(_: Actor = Depends(get_current_admin)) -> list[dict]:
    return await ListingService().find_all_with_owners()


@router.get("/my-listing", tags=["Listings"])
async def get_my_listing(actor: Actor = Depends(get_current_actor)) -> dict | None:
    return await ListingService().find_own_listing(actor)


@router.get("/slug/{slug:path}", tags=["Listings"])
async def get_listings_by_slug(slug: str) -> list[dict]:
    service = ListingService()
    try:
        return await service.find_by_slug(slug)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.put("/admin/{listing_id}", tags=["Admin"])
async def update_any_listing(
    listing_id: str,
    payload: ListingPayload,
    admin: Actor = Depends(get_current_admin),
) -> dict:
    service = ListingService()
    try:
        listing = await service.update_listing(listing_id, admin, _fields(payload))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Business updated successfully by admin", "listing": listing}


@router.put("/{listing_id}", tags=["Listings"])
async def update_listing(
    listing_id: str,
    payload: ListingPayload,
    actor: Actor = Depends(get_current_actor),
) -> dict:
    service = ListingService()
    try:
        listing = await service.update_listing(listing_id, actor, _fields(payload))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"message": "Business updated successfully", "listing": listing}


@router.delete("/admin/{listing_id}", tags=["Admin"])
async def delete_any_listing(listing_id: str, admin: Actor = Depends(get_current_admin)) -> dict:
    service = ListingService()
    try:
        await service.delete_listing(listing_id, admin)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return {"message": "Business deleted successfully by admin"}


@router.delete("/{listing_id}", tags=["Listings"])
async def delete_listing(listing_id: str, actor: Actor = Depends(get_current_actor)) -> dict:
    service = ListingService()
    try:
        await service.delete_listing(listing_id, actor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    return {"message": "Business deleted successfully"}
