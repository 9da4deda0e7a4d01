import re

from src.errors import ValidationError

_NON_SLUG_CHARS_REGEX = re.compile(r"[^a-z0-9]+")


def slugify(text: str | None) -> str:
    value = str(text or "").lower()
    value = _NON_SLUG_CHARS_REGEX.sub("-", value)
    return value.strip("-")


def build_listing_slug(city: str | None, category: str | None, business_name: str | None) -> str:
    """Return ``<city>/<category>/<business_name>`` with every segment slugified.

    The three source fields must be present; the derivation itself never fails.
    """
    sources = {"city": city, "category": category, "business_name": business_name}
    missing = [name for name, value in sources.items() if not str(value or "").strip()]
    if missing:
        raise ValidationError(f"Cannot build slug, missing field(s): {', '.join(missing)}.")
    return "/".join(slugify(value) for value in (city, category, business_name))
