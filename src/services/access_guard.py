from dataclasses import dataclass
from enum import Enum

from src.errors import ForbiddenError
from src.models.listing import Listing


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class AccessDecision(str, Enum):
    ALLOW = "allow"
    FORBID = "forbid"


@dataclass(frozen=True)
class Actor:
    """Verified caller identity handed over by the auth layer."""

    id: str
    role: Role
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def can_mutate(actor_id: str, actor_role: Role, resource_owner_id: str) -> AccessDecision:
    if actor_role is Role.ADMIN:
        return AccessDecision.ALLOW
    if actor_role is Role.USER:
        return AccessDecision.ALLOW if str(actor_id) == str(resource_owner_id) else AccessDecision.FORBID
    raise ValueError(f"Unsupported role {actor_role!r}.")


def ensure_can_mutate(actor: Actor, listing: Listing) -> None:
    decision = can_mutate(actor.id, actor.role, listing.owner_id)
    if decision is AccessDecision.FORBID:
        raise ForbiddenError("Not authorized to modify this listing.")
