"""Authentication dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.crewgate.api.dependencies.repositories import UserRepo
from src.crewgate.core.logging import bind_actor_context
from src.crewgate.core.security import decode_token
from src.crewgate.models import User

ACCESS_TOKEN_TYPE = "access"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    user_repo: UserRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Resolve the acting user from a bearer access token.

    Only identity is established here. Tenant membership and rank are checked
    by the services through ``AuthorizationService``.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise _unauthorized("Missing or invalid authorization header")

    payload = decode_token(authorization[7:])
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise _unauthorized("Invalid token type")

    try:
        user_id = UUID(str(payload.get("sub", "")))
    except ValueError as e:
        raise _unauthorized("Invalid token payload") from e

    user = await user_repo.get_by_id(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")

    bind_actor_context(user.id, email=user.email)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
