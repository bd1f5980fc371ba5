"""Authentication service: users, JWT access tokens and auth sessions."""
import uuid
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session as DbSession

from certprep.config import (
    ACCESS_TOKEN_EXPIRE_MINUTES,
    ALGORITHM,
    MAGIC_LINK_EXPIRE_MINUTES,
    SECRET_KEY,
    SESSION_EXTEND_MINUTES,
)
from certprep.models.db.user import AuthSession, MagicLink, User

MAGIC_LINK_PURPOSE = "magic-link"


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Verify a password against its hash; accounts without one never match."""
    if not hashed_password:
        return False
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def create_access_token(user_id: int, jti: str | None = None) -> tuple[str, str]:
    """Create a JWT access token.

    Returns:
        Tuple of (token, jti)
    """
    if jti is None:
        jti = str(uuid.uuid4())

    expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "exp": expire,
        "jti": jti,
    }
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt, jti


def create_magic_link_token(db: DbSession, email: str) -> str:
    """Issue a short-lived single-use token for `email` and record it."""
    jti = str(uuid.uuid4())
    expire = datetime.now(timezone.utc) + timedelta(minutes=MAGIC_LINK_EXPIRE_MINUTES)
    to_encode = {"email": email, "purpose": MAGIC_LINK_PURPOSE, "exp": expire, "jti": jti}
    db.add(MagicLink(token_jti=jti, email=email, expires_at=expire))
    db.commit()
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict | None:
    """Verify and decode a JWT token.

    Returns:
        Decoded token payload or None if invalid.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def consume_magic_link_token(db: DbSession, token: str) -> str | None:
    """Return the email a magic-link token was issued for and mark it used.

    Returns None for invalid, expired, unknown or already used tokens.
    """
    payload = verify_token(token)
    if payload is None or payload.get("purpose") != MAGIC_LINK_PURPOSE:
        return None
    jti = payload.get("jti")
    if not jti:
        return None
    now = datetime.now(timezone.utc)
    result = db.execute(
        update(MagicLink)
        .where(
            MagicLink.token_jti == jti,
            MagicLink.used_at.is_(None),
            MagicLink.expires_at > now,
        )
        .values(used_at=now)
    )
    db.commit()
    if result.rowcount != 1:
        return None
    return payload.get("email")


def get_user_by_email(db: DbSession, email: str) -> User | None:
    """Get user by email (case-insensitive)."""
    return db.execute(
        select(User).where(User.email == email.strip().lower())
    ).scalar_one_or_none()


def get_user_by_id(db: DbSession, user_id: int) -> User | None:
    """Get user by ID."""
    return db.get(User, user_id)


def create_user(
    db: DbSession,
    email: str,
    password: str | None = None,
    full_name: str | None = None,
) -> User:
    """Create a new user. Magic-link sign-ups have no password."""
    user = User(
        email=email.strip().lower(),
        hashed_password=hash_password(password) if password else None,
        full_name=full_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: DbSession, user: User, changes: dict) -> User:
    """Apply profile field changes (full_name, avatar_url)."""
    for field in ("full_name", "avatar_url"):
        if field in changes:
            setattr(user, field, changes[field])
    db.commit()
    db.refresh(user)
    return user


def sign_in(db: DbSession, user: User) -> tuple[str, AuthSession]:
    """Issue an access token and record its session."""
    token, jti = create_access_token(user.id)
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    session = create_session(db, user.id, jti, expires_at)
    return token, session


def create_session(
    db: DbSession, user_id: int, token_jti: str, expires_at: datetime
) -> AuthSession:
    """Create a new auth session for user."""
    session = AuthSession(
        user_id=user_id,
        token_jti=token_jti,
        expires_at=expires_at,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    return session


def get_active_session(db: DbSession, token_jti: str) -> AuthSession | None:
    """Get an active session by token JTI."""
    now = datetime.now(timezone.utc)
    return db.execute(
        select(AuthSession).where(
            AuthSession.token_jti == token_jti,
            AuthSession.is_active.is_(True),
            AuthSession.expires_at > now,
        )
    ).scalar_one_or_none()


def extend_session(db: DbSession, session: AuthSession) -> AuthSession:
    """Slide session expiration forward and update last activity."""
    now = datetime.now(timezone.utc)
    session.last_activity = now
    session.expires_at = now + timedelta(minutes=SESSION_EXTEND_MINUTES)
    db.commit()
    db.refresh(session)
    return session


def invalidate_session(db: DbSession, token_jti: str) -> bool:
    """Invalidate a session by token JTI; returns whether one was active."""
    session = db.execute(
        select(AuthSession).where(AuthSession.token_jti == token_jti)
    ).scalar_one_or_none()
    if session is None or not session.is_active:
        return False
    session.is_active = False
    db.commit()
    return True


def invalidate_all_user_sessions(db: DbSession, user_id: int) -> int:
    """Invalidate all sessions for a user."""
    result = db.execute(
        update(AuthSession)
        .where(AuthSession.user_id == user_id, AuthSession.is_active.is_(True))
        .values(is_active=False)
    )
    db.commit()
    return result.rowcount


def cleanup_expired_sessions(db: DbSession) -> int:
    """Remove expired auth sessions from database."""
    now = datetime.now(timezone.utc)
    result = db.execute(delete(AuthSession).where(AuthSession.expires_at < now))
    db.commit()
    return result.rowcount


def cleanup_expired_magic_links(db: DbSession) -> int:
    """Remove magic links past their expiry."""
    now = datetime.now(timezone.utc)
    result = db.execute(delete(MagicLink).where(MagicLink.expires_at < now))
    db.commit()
    return result.rowcount
