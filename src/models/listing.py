import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Iterable, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic import ValidationError as ModelValidationError

from src.errors import StorageError

LOGGER = logging.getLogger(__name__)

LISTING_FIELDS = (
    "business_name",
    "category",
    "description",
    "email",
    "phone",
    "address",
    "city",
    "image",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: object) -> object:
    # Mongo hands back naive datetimes unless the client is tz-aware.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SelfAuthored(BaseModel):
    kind: Literal["self"] = "self"
    owner_id: str


class Curated(BaseModel):
    kind: Literal["curated"] = "curated"
    curator_id: str


Authorship = Annotated[SelfAuthored | Curated, Field(discriminator="kind")]


class Rating(BaseModel):
    rater_user_id: str
    rater_name: str = "Anonymous"
    score: int = Field(ge=1, le=5)
    comment: str = ""
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", mode="after")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)


class RatingAggregate(BaseModel):
    model_config = ConfigDict(frozen=True)

    average_rating: float = 0.0
    total_ratings: int = 0


def compute_aggregate(ratings: Iterable[Rating]) -> RatingAggregate:
    """Recompute the aggregate from scratch.

    The mean is taken in exact decimal arithmetic and rounded half-up to one
    decimal, so ``[3, 3, 4, 3]`` averages to ``3.3``.
    """
    scores = [rating.score for rating in ratings]
    if not scores:
        return RatingAggregate(average_rating=0.0, total_ratings=0)

    mean = Decimal(sum(scores)) / Decimal(len(scores))
    rounded = mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return RatingAggregate(average_rating=float(rounded), total_ratings=len(scores))


class Listing(BaseModel):
    id: str | None = None
    authorship: Authorship
    business_name: str
    category: str
    description: str
    email: str
    phone: str
    address: str
    city: str
    image: str
    slug: str = ""
    ratings: list[Rating] = Field(default_factory=list)
    average_rating: float = 0.0
    total_ratings: int = 0
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @computed_field
    @property
    def is_admin_listing(self) -> bool:
        return isinstance(self.authorship, Curated)

    @computed_field
    @property
    def owner_id(self) -> str:
        authorship = self.authorship
        if isinstance(authorship, SelfAuthored):
            return authorship.owner_id
        if isinstance(authorship, Curated):
            return authorship.curator_id
        raise TypeError(f"Unsupported authorship {type(authorship).__name__}.")

    @property
    def aggregate(self) -> RatingAggregate:
        return RatingAggregate(average_rating=self.average_rating, total_ratings=self.total_ratings)

    def refresh_aggregate(self) -> RatingAggregate:
        aggregate = compute_aggregate(self.ratings)
        self.average_rating = aggregate.average_rating
        self.total_ratings = aggregate.total_ratings
        return aggregate

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Listing":
        payload = dict(document)
        if "_id" in payload:
            payload["id"] = str(payload.pop("_id"))
        try:
            return cls.model_validate(payload)
        except ModelValidationError as exc:
            LOGGER.exception("Stored listing id=%s could not be decoded", payload.get("id"))
            raise StorageError(f"Listing '{payload.get('id')}' could not be read.") from exc

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="python", exclude={"id", "is_admin_listing", "owner_id"})

    def to_view(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"version"})
