import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.services.access_guard import Actor, Role

LOGGER = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_actor(token: str) -> Actor:
    """Turn a verified bearer token into an ``Actor``.

    Tokens are issued elsewhere; only ``sub`` is mandatory, ``role`` defaults
    to a regular user.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Could not validate credentials") from exc

    user_id = str(payload.get("sub") or "").strip()
    if not user_id:
        raise ValueError("Could not validate credentials")

    try:
        role = Role(str(payload.get("role") or Role.USER.value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"Unsupported role {payload.get('role')!r}.") from exc

    return Actor(id=user_id, role=role, name=str(payload.get("name") or "").strip())


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Actor:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_actor(credentials.credentials)
    except ValueError as exc:
        LOGGER.warning("Rejected bearer token: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


async def get_current_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Admin only.")
    return actor
