from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String

from app.database import Base


class Session(Base):
    __tablename__ = "sessions"

    session_id = Column(String(255), primary_key=True)
    # UUID in text form; anonymous sessions have no user
    user_id = Column(String(36), nullable=True, index=True)
    csrf_token = Column(String(64), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    expires_at = Column(
        DateTime(timezone=True),
        nullable=False,
        index=True,  # Index for efficient cleanup queries
    )

    def __repr__(self):
        return f"<Session(session_id='{self.session_id[:8]}...', user_id='{self.user_id}')>"
