"""HTTP client that keeps a valid CSRF token on every mutating request."""

from .api_client import ClientConfig, CsrfClient, TokenCache, TokenMismatchError
from .users import UsersApi

__all__ = ["ClientConfig", "CsrfClient", "TokenCache", "TokenMismatchError", "UsersApi"]
