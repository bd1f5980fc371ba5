"""
Auth session provider.

The provider is the one object that signs users in and out. Every auth-state
transition is published as an `AuthEvent` on a single-consumer queue; one
daemon thread drains it, stamps `last_sign_in_at` and logs the transition.
Routes get the provider injected (`certprep.dependencies.auth.get_session_provider`)
instead of sharing global state.
"""
import enum
import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from fastapi import HTTPException, status
from sqlalchemy.orm import Session as DbSession

from certprep.database import SessionLocal
from certprep.models.db.user import AuthSession, User
from certprep.services import auth_service
from certprep.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class AuthEventType(str, enum.Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    TOKEN_REFRESHED = "token_refreshed"
    USER_UPDATED = "user_updated"


@dataclass(frozen=True)
class AuthEvent:
    type: AuthEventType
    user_id: int
    at: datetime = field(default_factory=utc_now)


_STOP = object()


class SessionProvider:
    """Owns sign-in/sign-out and the auth event channel."""

    def __init__(self, session_factory: Callable[[], DbSession] = SessionLocal) -> None:
        self._session_factory = session_factory
        self._events: queue.Queue = queue.Queue()
        self._consumer: threading.Thread | None = None

    # Event channel

    def publish(self, event: AuthEvent) -> None:
        self._events.put(event)

    def start(self) -> None:
        """Start the consumer thread (idempotent)."""
        if self._consumer is not None and self._consumer.is_alive():
            return
        self._consumer = threading.Thread(
            target=self._consume, name="auth_events", daemon=True
        )
        self._consumer.start()

    def stop(self, timeout: float = 5.0) -> None:
        if self._consumer is None:
            return
        self._events.put(_STOP)
        self._consumer.join(timeout)
        self._consumer = None

    def drain(self) -> int:
        """Handle every queued event on the calling thread; returns the count."""
        handled = 0
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return handled
            if event is _STOP:
                continue
            self._handle(event)
            handled += 1

    def _consume(self) -> None:
        while True:
            event = self._events.get()
            if event is _STOP:
                return
            try:
                self._handle(event)
            except Exception:
                logger.exception("Failed to handle auth event %s", event.type.value)

    def _handle(self, event: AuthEvent) -> None:
        if event.type is AuthEventType.TOKEN_REFRESHED:
            logger.debug("Token refreshed for user %s", event.user_id)
            return
        logger.info("Auth event %s for user %s", event.type.value, event.user_id)
        if event.type is not AuthEventType.SIGNED_IN:
            return
        db = self._session_factory()
        try:
            user = db.get(User, event.user_id)
            if user is not None:
                user.last_sign_in_at = event.at
                db.commit()
        finally:
            db.close()

    # Auth operations

    def sign_up(
        self,
        db: DbSession,
        email: str,
        password: str,
        full_name: str | None = None,
    ) -> User:
        if auth_service.get_user_by_email(db, email):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )
        return auth_service.create_user(db, email, password, full_name)

    def sign_in_with_password(
        self, db: DbSession, email: str, password: str
    ) -> tuple[str, AuthSession]:
        user = auth_service.get_user_by_email(db, email)
        if user is None or not auth_service.verify_password(password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )
        return self._sign_in(db, user)

    def request_magic_link(self, db: DbSession, email: str) -> str:
        """Issue a magic-link token, creating a passwordless account on first use."""
        user = auth_service.get_user_by_email(db, email)
        if user is None:
            auth_service.create_user(db, email)
        return auth_service.create_magic_link_token(db, email.strip().lower())

    def sign_in_with_magic_link(self, db: DbSession, token: str) -> tuple[str, AuthSession]:
        email = auth_service.consume_magic_link_token(db, token)
        user = auth_service.get_user_by_email(db, email) if email else None
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired magic link",
            )
        return self._sign_in(db, user)

    def _sign_in(self, db: DbSession, user: User) -> tuple[str, AuthSession]:
        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User is inactive",
            )
        token, session = auth_service.sign_in(db, user)
        self.publish(AuthEvent(AuthEventType.SIGNED_IN, user.id))
        return token, session

    def sign_out(self, db: DbSession, token: str) -> bool:
        payload = auth_service.verify_token(token)
        if not payload or not payload.get("jti"):
            return False
        if not auth_service.invalidate_session(db, payload["jti"]):
            return False
        self.publish(AuthEvent(AuthEventType.SIGNED_OUT, int(payload["sub"])))
        return True

    def refresh(self, db: DbSession, session: AuthSession) -> AuthSession:
        """Slide an active session's expiry forward."""
        session = auth_service.extend_session(db, session)
        self.publish(AuthEvent(AuthEventType.TOKEN_REFRESHED, session.user_id))
        return session

    def update_profile(self, db: DbSession, user: User, changes: dict) -> User:
        user = auth_service.update_profile(db, user, changes)
        self.publish(AuthEvent(AuthEventType.USER_UPDATED, user.id))
        return user
