"""Database-backed session store.

Sessions hold the CSRF secret for a client. The guard only ever reads the
token; creation, rotation and deletion happen here.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.logging_config import log_database_event
from app.models.session import Session
from app.security.csrf import generate_csrf_token


class SessionStore:
    """Key-value lifecycle store keyed by session id."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], lifetime_hours: int = 24):
        self.sessionmaker = sessionmaker
        self.lifetime = timedelta(hours=lifetime_hours)

    async def create(self, user_id: Optional[str] = None) -> Session:
        """Create a new session with a fresh CSRF token."""
        now = datetime.now(timezone.utc)
        db_session = Session(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            csrf_token=generate_csrf_token(),
            created_at=now,
            expires_at=now + self.lifetime,
        )
        async with self.sessionmaker() as db:
            db.add(db_session)
            await db.commit()

        log_database_event("create", "sessions", record_id=f"{db_session.session_id[:8]}...")
        return db_session

    async def get(self, session_id: Optional[str]) -> Optional[Session]:
        """Return the live session, or None if missing or expired."""
        if not session_id:
            return None

        async with self.sessionmaker() as db:
            # Lazy cleanup of expired sessions on each lookup
            await db.execute(delete(Session).where(Session.expires_at <= datetime.now(timezone.utc)))
            await db.commit()

            result = await db.execute(
                select(Session).where(
                    Session.session_id == session_id,
                    Session.expires_at > datetime.now(timezone.utc),
                )
            )
            return result.scalar_one_or_none()

    async def get_csrf_token(self, session_id: Optional[str]) -> Optional[str]:
        """Return the CSRF token held by the session, if any."""
        session = await self.get(session_id)
        return session.csrf_token if session else None

    async def regenerate_token(self, session_id: str) -> str:
        """Rotate the CSRF token for a session.

        Raises:
            LookupError: If the session does not exist
        """
        new_token = generate_csrf_token()
        async with self.sessionmaker() as db:
            result = await db.execute(
                update(Session).where(Session.session_id == session_id).values(csrf_token=new_token)
            )
            await db.commit()

        if result.rowcount == 0:
            raise LookupError(f"Unknown session {session_id[:8]}...")

        log_database_event("update", "sessions", record_id=f"{session_id[:8]}...")
        return new_token

    async def delete(self, session_id: str) -> None:
        """Delete a session."""
        if not session_id:
            return

        async with self.sessionmaker() as db:
            await db.execute(delete(Session).where(Session.session_id == session_id))
            await db.commit()

        log_database_event("delete", "sessions", record_id=f"{session_id[:8]}...")


def get_session_store(request: Request) -> SessionStore:
    """FastAPI dependency returning the application's session store."""
    return request.app.state.session_store
