"""Authentication dependencies for FastAPI."""
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session as DbSession

from certprep.database import get_db
from certprep.models.db.user import AuthSession, User
from certprep.services.auth_service import (
    get_active_session,
    get_user_by_id,
    verify_token,
)
from certprep.services.session_provider import SessionProvider

# HTTP Bearer scheme for JWT
security = HTTPBearer(auto_error=False)


def get_session_provider(request: Request) -> SessionProvider:
    """The provider created by the application at import time."""
    return request.app.state.session_provider


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve(
    credentials: HTTPAuthorizationCredentials | None,
    db: DbSession,
    provider: SessionProvider,
) -> tuple[User, AuthSession]:
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None or not payload.get("jti") or payload.get("sub") is None:
        raise _unauthorized("Invalid or expired token")

    session = get_active_session(db, payload["jti"])
    if session is None:
        raise _unauthorized("Session expired or invalidated")

    user = get_user_by_id(db, int(payload["sub"]))
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise _unauthorized("User is inactive")

    # Extend session on activity
    session = provider.refresh(db, session)
    return user, session


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
) -> tuple[User, AuthSession]:
    """The authenticated user together with their auth session."""
    return _resolve(credentials, db, provider)


async def get_current_user(
    current: Annotated[tuple[User, AuthSession], Depends(get_current_session)],
) -> User:
    """Get the current authenticated user.

    Raises:
        HTTPException: 401 if not authenticated or token is invalid.
    """
    return current[0]


async def get_optional_session(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
    provider: Annotated[SessionProvider, Depends(get_session_provider)],
) -> tuple[User, AuthSession] | None:
    """The current user and auth session, or None when signed out."""
    if credentials is None:
        return None
    try:
        return _resolve(credentials, db, provider)
    except HTTPException:
        return None


async def get_optional_user(
    current: Annotated[tuple[User, AuthSession] | None, Depends(get_optional_session)],
) -> User | None:
    """Get the current user if authenticated, otherwise None."""
    return current[0] if current else None


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """403 for signed-in users without admin rights."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_admin)]

