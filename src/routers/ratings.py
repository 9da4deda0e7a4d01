from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, model_validator

from src.errors import ConflictError
from src.services.access_guard import Actor
from src.services.auth import get_current_actor
from src.services.rating_ledger import RatingService

router = APIRouter(prefix="/ratings")


class SubmitRatingRequest(BaseModel):
    score: int | None = None
    comment: str | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_rating_key(cls, raw: object) -> object:
        if not isinstance(raw, dict) or "rating" not in raw:
            return raw

        payload = dict(raw)
        legacy_score = payload.pop("rating")
        if "score" in payload and payload["score"] != legacy_score:
            raise ValueError("Use either 'score' or 'rating', not both with different values.")
        payload["score"] = legacy_score
        return payload


@router.post("/{listing_id}", tags=["Ratings"])
async def submit_rating(
    listing_id: str,
    payload: SubmitRatingRequest,
    actor: Actor = Depends(get_current_actor),
) -> dict:
    service = RatingService()
    try:
        result = await service.submit_rating(listing_id, actor, score=payload.score, comment=payload.comment)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    message = "Rating updated successfully" if result["action"] == "replaced" else "Rating added successfully"
    return {"message": message, **result}


@router.get("/{listing_id}", tags=["Ratings"])
async def get_ratings(listing_id: str) -> dict:
    service = RatingService()
    try:
        return await service.get_ratings(listing_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.delete("/{listing_id}", tags=["Ratings"])
async def delete_rating(listing_id: str, actor: Actor = Depends(get_current_actor)) -> dict:
    service = RatingService()
    try:
        result = await service.delete_rating(listing_id, actor)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return {"message": "Rating deleted successfully", **result}
