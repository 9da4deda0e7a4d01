from src.models.listing import (
    LISTING_FIELDS,
    Curated,
    Listing,
    Rating,
    RatingAggregate,
    SelfAuthored,
    compute_aggregate,
)

__all__ = [
    "LISTING_FIELDS",
    "Curated",
    "Listing",
    "Rating",
    "RatingAggregate",
    "SelfAuthored",
    "compute_aggregate",
]
