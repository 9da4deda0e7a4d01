import pytest

from src.errors import ValidationError
from src.services.slug import build_listing_slug, slugify


def test_slugify_collapses_and_trims_separators() -> None:
    assert slugify("New York!") == "new-york"
    assert slugify("  --Foo Bar--  ") == "foo-bar"
    assert slugify("Cafe & Bar") == "cafe-bar"


def test_slugify_is_total_and_idempotent() -> None:
    assert slugify("") == ""
    assert slugify(None) == ""
    assert slugify("!!!") == ""

    once = slugify("Joe's Diner")
    assert once == "joe-s-diner"
    assert slugify(once) == once


def test_slugify_treats_non_ascii_letters_as_separators() -> None:
    assert slugify("Café Olé 2") == "caf-ol-2"


def test_build_listing_slug_joins_segments() -> None:
    assert build_listing_slug("Austin", "Cafe & Bar", "Joe's Diner") == "austin/cafe-bar/joe-s-diner"


def test_build_listing_slug_rejects_missing_source_fields() -> None:
    with pytest.raises(ValidationError, match="city"):
        build_listing_slug(None, "Cafe", "Joe's")
    with pytest.raises(ValidationError, match="business_name"):
        build_listing_slug("Austin", "Cafe", "   ")
