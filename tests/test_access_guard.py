import pytest

from src.errors import ForbiddenError
from src.models.listing import Curated, Listing, SelfAuthored
from src.services.access_guard import AccessDecision, Actor, Role, can_mutate, ensure_can_mutate


def _listing(authorship) -> Listing:
    return Listing(
        authorship=authorship,
        business_name="Joe's Diner",
        category="Cafe",
        description="Diner",
        email="joe@example.com",
        phone="555",
        address="1 Main St",
        city="Austin",
        image="joe.png",
    )


def test_admin_is_always_allowed() -> None:
    assert can_mutate("admin-1", Role.ADMIN, "someone-else") is AccessDecision.ALLOW


def test_user_is_allowed_only_on_own_resource() -> None:
    assert can_mutate("user-a", Role.USER, "user-a") is AccessDecision.ALLOW
    assert can_mutate("user-b", Role.USER, "user-a") is AccessDecision.FORBID


def test_ensure_can_mutate_resolves_owner_from_authorship() -> None:
    own = _listing(SelfAuthored(owner_id="user-a"))
    curated = _listing(Curated(curator_id="admin-1"))

    ensure_can_mutate(Actor(id="user-a", role=Role.USER), own)
    ensure_can_mutate(Actor(id="admin-2", role=Role.ADMIN), curated)

    with pytest.raises(ForbiddenError):
        ensure_can_mutate(Actor(id="user-b", role=Role.USER), own)
    with pytest.raises(ForbiddenError):
        ensure_can_mutate(Actor(id="user-a", role=Role.USER), curated)


def test_listing_derives_owner_and_admin_flag() -> None:
    own = _listing(SelfAuthored(owner_id="user-a"))
    curated = _listing(Curated(curator_id="admin-1"))

    assert own.owner_id == "user-a"
    assert own.is_admin_listing is False
    assert curated.owner_id == "admin-1"
    assert curated.is_admin_listing is True
