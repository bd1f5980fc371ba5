"""Authentication routes."""
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session as DbSession

from certprep.config import ACCESS_TOKEN_EXPIRE_MINUTES, APP_ENV, MAGIC_LINK_BASE_URL
from certprep.database import get_db
from certprep.dependencies.auth import (
    CurrentUser,
    get_optional_session,
    get_session_provider,
    security,
)
from certprep.models import (
    DataResponse,
    MagicLinkRequest,
    MagicLinkResponse,
    MagicLinkVerify,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SessionInfo,
    TokenResponse,
    UserLogin,
    UserRegister,
)
from certprep.models.db.user import AuthSession, User
from certprep.services.session_provider import SessionProvider

router = APIRouter(prefix="/api/auth", tags=["auth"])

Provider = Annotated[SessionProvider, Depends(get_session_provider)]


def _token_response(token: str) -> DataResponse[TokenResponse]:
    return DataResponse(
        data=TokenResponse(
            access_token=token,
            token_type="bearer",
            expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )
    )


@router.post(
    "/register",
    response_model=DataResponse[ProfileResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: UserRegister,
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> DataResponse[ProfileResponse]:
    """Register a new user."""
    user = provider.sign_up(db, data.email, data.password, data.full_name)
    return DataResponse(data=ProfileResponse.model_validate(user))


@router.post("/login", response_model=DataResponse[TokenResponse])
async def login(
    data: UserLogin,
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> DataResponse[TokenResponse]:
    """Sign in with email and password."""
    token, _ = provider.sign_in_with_password(db, data.email, data.password)
    return _token_response(token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> MessageResponse:
    """Logout and invalidate current session."""
    if credentials is None or not provider.sign_out(db, credentials.credentials):
        return MessageResponse(message="Already logged out")
    return MessageResponse(message="Logged out successfully")


@router.get("/session", response_model=DataResponse[SessionInfo | None])
async def get_session(
    current: Annotated[tuple[User, AuthSession] | None, Depends(get_optional_session)],
) -> DataResponse[SessionInfo | None]:
    """Current session, or `data: null` when signed out."""
    if current is None:
        return DataResponse(data=None)
    user, session = current
    return DataResponse(
        data=SessionInfo(
            user=ProfileResponse.model_validate(user), expires_at=session.expires_at
        )
    )


@router.get("/profile", response_model=DataResponse[ProfileResponse])
async def get_profile(current_user: CurrentUser) -> DataResponse[ProfileResponse]:
    return DataResponse(data=ProfileResponse.model_validate(current_user))


@router.patch("/profile", response_model=DataResponse[ProfileResponse])
async def update_profile(
    data: ProfileUpdateRequest,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> DataResponse[ProfileResponse]:
    user = provider.update_profile(db, current_user, data.model_dump(exclude_unset=True))
    return DataResponse(data=ProfileResponse.model_validate(user))


@router.post("/magic-link", response_model=MagicLinkResponse)
async def request_magic_link(
    data: MagicLinkRequest,
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> MagicLinkResponse:
    """
    Issue a sign-in link. No mail is sent from here; outside production the
    link is returned in the response.
    """
    token = provider.request_magic_link(db, data.email)
    link = f"{MAGIC_LINK_BASE_URL}?token={token}"
    return MagicLinkResponse(
        message="Check your email for the sign-in link",
        magic_link=link if APP_ENV != "production" else None,
    )


@router.post("/magic-link/verify", response_model=DataResponse[TokenResponse])
async def verify_magic_link(
    data: MagicLinkVerify,
    db: Annotated[DbSession, Depends(get_db)],
    provider: Provider,
) -> DataResponse[TokenResponse]:
    token, _ = provider.sign_in_with_magic_link(db, data.token)
    return _token_response(token)
