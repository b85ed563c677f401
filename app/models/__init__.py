# Import all models so they're registered with SQLAlchemy metadata
from .user import User
from .session import Session

__all__ = ["User", "Session"]
