"""Periodic maintenance: expire overdue exam sessions and drop dead auth sessions."""
import logging
import threading
import time
from typing import Callable

from sqlalchemy.orm import Session as DbSession

from certprep.config import SESSION_SWEEP_INTERVAL_SECONDS
from certprep.database import SessionLocal
from certprep.services.auth_service import cleanup_expired_magic_links, cleanup_expired_sessions
from certprep.services.exam_service import expire_overdue_sessions

logger = logging.getLogger(__name__)


def sweep(session_factory: Callable[[], DbSession] = SessionLocal) -> tuple[int, int]:
    """Run one maintenance pass; returns (expired exam sessions, removed auth sessions)."""
    db = session_factory()
    try:
        expired = expire_overdue_sessions(db)
        removed = cleanup_expired_sessions(db)
        cleanup_expired_magic_links(db)
    finally:
        db.close()
    if expired or removed:
        logger.info(
            "Sweep expired %s exam session(s), removed %s auth session(s)", expired, removed
        )
    return expired, removed


def schedule_session_sweep(interval: int = SESSION_SWEEP_INTERVAL_SECONDS) -> threading.Thread:
    """Run `sweep` in a daemon thread every `interval` seconds."""

    def _worker() -> None:
        while True:
            try:
                sweep()
            except Exception:
                logger.exception("Session sweep failed")
            time.sleep(interval)

    thread = threading.Thread(target=_worker, name="session_sweep", daemon=True)
    thread.start()
    return thread
