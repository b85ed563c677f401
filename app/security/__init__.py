"""Security module for CSRF protection and session storage."""

from .csrf_middleware import CsrfMiddleware
from .session_store import SessionStore

__all__ = ["CsrfMiddleware", "SessionStore"]
