from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from src.config import settings
from src.database import LISTINGS_COLLECTION, get_database, ping_mongo_detailed

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    mongo: str
    service: str
    environment: str
    listings: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    detail: str | None = None


@router.get("/health", response_model=HealthResponse)
async def get_health() -> JSONResponse:
    mongo_ok, mongo_detail = await ping_mongo_detailed()
    listing_count = None
    if mongo_ok:
        listing_count = await get_database()[LISTINGS_COLLECTION].estimated_document_count()

    payload = HealthResponse(
        status="ok" if mongo_ok else "degraded",
        mongo="up" if mongo_ok else "down",
        service=settings.app_name,
        environment=settings.app_env,
        listings=listing_count,
        detail=None if mongo_ok else mongo_detail,
    )
    return JSONResponse(
        status_code=status.HTTP_200_OK if mongo_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=payload.model_dump(mode="json", exclude_none=True),
    )
