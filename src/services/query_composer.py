import re
from dataclasses import dataclass
from typing import Any


def _clean_term(value: str | None) -> str | None:
    cleaned = str(value or "").strip()
    return cleaned or None


def _contains(term: str) -> dict[str, str]:
    return {"$regex": re.escape(term), "$options": "i"}


@dataclass(frozen=True)
class ListingQuery:
    """Optional search terms for the public listing search.

    ``search`` matches business name or description, ``category`` and ``city``
    match their own field. Every match is a case-insensitive substring match;
    present terms are ANDed.
    """

    search: str | None = None
    category: str | None = None
    city: str | None = None

    @classmethod
    def from_terms(
        cls,
        search: str | None = None,
        category: str | None = None,
        city: str | None = None,
    ) -> "ListingQuery":
        return cls(search=_clean_term(search), category=_clean_term(category), city=_clean_term(city))

    def to_filter(self) -> dict[str, Any]:
        clauses: dict[str, Any] = {}
        if self.search:
            clauses["$or"] = [
                {"business_name": _contains(self.search)},
                {"description": _contains(self.search)},
            ]
        if self.category:
            clauses["category"] = _contains(self.category)
        if self.city:
            clauses["city"] = _contains(self.city)
        return clauses
