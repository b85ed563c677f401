"""CSRF token generation and double-submit validation.

Everything in this module is pure: no request objects, no I/O. The guard
middleware collects the token carriers from a request and hands them to
:func:`validate`, which decides whether the request may proceed.
"""

from dataclasses import dataclass
import secrets
from typing import Iterable, Optional, Tuple, Union

READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

SOURCE_FORM_FIELD = "form_field"
SOURCE_PRIMARY_HEADER = "primary_header"
SOURCE_SECONDARY_HEADER = "secondary_header"

REASON_MISSING_SESSION_TOKEN = "missing_session_token"
REASON_MISSING_REQUEST_TOKEN = "missing_request_token"
REASON_TOKEN_MISMATCH = "token_mismatch"


def generate_csrf_token() -> str:
    """Generate a cryptographically secure CSRF token.

    Returns:
        64-character hex string (32 bytes)
    """
    return secrets.token_hex(32)


@dataclass(frozen=True)
class TokenCandidates:
    """Client-supplied token copies found on one request."""

    form_field: Optional[str] = None
    primary_header: Optional[str] = None
    secondary_header: Optional[str] = None

    def select(self) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(source, token)`` for the first non-empty candidate.

        Order is form field, then primary header, then secondary header.
        """
        for source, value in (
            (SOURCE_FORM_FIELD, self.form_field),
            (SOURCE_PRIMARY_HEADER, self.primary_header),
            (SOURCE_SECONDARY_HEADER, self.secondary_header),
        ):
            if value:
                return source, value
        return None, None


@dataclass(frozen=True)
class Accepted:
    source: str


@dataclass(frozen=True)
class Mismatch:
    reason: str
    source: Optional[str] = None


ValidationResult = Union[Accepted, Mismatch]


def tokens_equal(expected: str, supplied: str) -> bool:
    """Compare two tokens in constant time."""
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


def validate(candidates: TokenCandidates, session_token: Optional[str]) -> ValidationResult:
    """Check the supplied token against the session-held token.

    Args:
        candidates: Token copies extracted from the request
        session_token: Token stored with the session, None if there is no session

    Returns:
        Accepted with the winning source, or Mismatch with a reason
    """
    source, supplied = candidates.select()

    if not session_token:
        return Mismatch(REASON_MISSING_SESSION_TOKEN, source)
    if supplied is None:
        return Mismatch(REASON_MISSING_REQUEST_TOKEN)
    if not tokens_equal(session_token, supplied):
        return Mismatch(REASON_TOKEN_MISMATCH, source)
    return Accepted(source)


def is_reading(method: str) -> bool:
    return method.upper() in READ_METHODS


def _normalize_path(path: str) -> str:
    return path.strip("/")


def is_exempt(path: str, exempt_paths: Iterable[str]) -> bool:
    """Return True if ``path`` is on the exempt list.

    Entries match exactly, ignoring leading and trailing slashes. An entry
    ending in ``/*`` matches that path and everything below it, segment by
    segment; any other entry ending in ``*`` is a plain prefix match.
    """
    normalized = _normalize_path(path)
    for pattern in exempt_paths:
        if pattern.endswith("/*"):
            prefix = _normalize_path(pattern[:-2])
            if not prefix or normalized == prefix or normalized.startswith(prefix + "/"):
                return True
        elif pattern.endswith("*"):
            if normalized.startswith(_normalize_path(pattern[:-1])):
                return True
        elif normalized == _normalize_path(pattern):
            return True
    return False
