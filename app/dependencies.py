"""FastAPI dependencies."""

from collections.abc import Callable, Coroutine
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager, get_cache_manager
from app.core.security import UserRole, decode_access_token
from app.database import get_db

# Security
security = HTTPBearer()


class Actor(BaseModel):
    """Authenticated front-desk user taken from the access token."""

    id: int
    role: UserRole


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Actor:
    """
    Extract and validate the acting user from the JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Acting user (id and role)

    Raises:
        HTTPException: If token is invalid, expired or carries no known role
    """
    payload = decode_access_token(credentials.credentials)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return Actor(id=int(payload.get("sub")), role=UserRole(payload.get("role")))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject or role",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(*roles: UserRole) -> Callable[..., Coroutine[Any, Any, Actor]]:
    """Build a dependency that admits only the given roles."""

    async def check_role(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions for this operation",
            )
        return actor

    return check_role


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
FrontDeskActor = Annotated[Actor, Depends(require_roles(UserRole.FRONTDESK, UserRole.ADMIN))]
AdminActor = Annotated[Actor, Depends(require_roles(UserRole.ADMIN))]
CacheManagerDep = Annotated[CacheManager | None, Depends(get_cache_manager)]
