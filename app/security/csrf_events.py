"""Observation hooks for the CSRF guard.

The guard reports its decisions as structured events to an observer. The
default observer drops them; the application installs
:class:`LoggingCsrfObserver` to write them to the application log.
"""

from dataclasses import asdict, dataclass, field
import logging
from typing import Dict, Iterable, Optional
from urllib.parse import urlparse

from fastapi import Request

from app.logging_config import log_csrf_event

EVENT_SKIPPED = "csrf.skipped"
EVENT_ACCEPTED = "csrf.accepted"
EVENT_REJECTED = "csrf.rejected"
EVENT_ERROR = "csrf.error"
EVENT_RESPONSE = "csrf.response"

USER_AGENT_MAX_LENGTH = 100


@dataclass
class RequestContext:
    """Per-request record of everything the guard looked at."""

    method: str
    path: str
    url: str
    client_ip: str
    user_agent: str
    origin: Optional[str]
    referer: Optional[str]
    host: Optional[str]
    from_frontend: bool
    session_id: Optional[str]
    cookie_token: Optional[str]
    primary_header_token: Optional[str]
    secondary_header_token: Optional[str]
    form_field_token: Optional[str] = None
    extra: Dict[str, object] = field(default_factory=dict)

    def as_log_dict(self) -> dict:
        """Flatten for logging; secrets are reduced to their length."""
        data = asdict(self)
        extra = data.pop("extra")
        for key in (
            "cookie_token",
            "primary_header_token",
            "secondary_header_token",
            "form_field_token",
        ):
            value = data.pop(key)
            data[f"{key}_length"] = len(value) if value else 0
        if self.session_id:
            data["session_id"] = f"{self.session_id[:8]}..."
        data.update(extra)
        return data


def request_from_frontend(request: Request, stateful_domains: Iterable[str]) -> bool:
    """Check whether the referer or origin host is a configured frontend domain."""
    source = request.headers.get("referer") or request.headers.get("origin")
    if not source:
        return False

    parsed = urlparse(source)
    host = parsed.hostname
    if not host:
        return False
    host_with_port = f"{host}:{parsed.port}" if parsed.port else host

    return any(domain in (host, host_with_port) for domain in stateful_domains)


def build_request_context(
    request: Request,
    session_id: Optional[str],
    cookie_name: str,
    primary_header: str,
    secondary_header: str,
    stateful_domains: Iterable[str],
) -> RequestContext:
    user_agent = request.headers.get("user-agent", "unknown")
    return RequestContext(
        method=request.method,
        path=request.url.path,
        url=str(request.url),
        client_ip=request.client.host if request.client else "unknown",
        user_agent=user_agent[:USER_AGENT_MAX_LENGTH],
        origin=request.headers.get("origin"),
        referer=request.headers.get("referer"),
        host=request.headers.get("host"),
        from_frontend=request_from_frontend(request, stateful_domains),
        session_id=session_id,
        cookie_token=request.cookies.get(cookie_name),
        primary_header_token=request.headers.get(primary_header),
        secondary_header_token=request.headers.get(secondary_header),
    )


class CsrfObserver:
    """Receives guard events. The base class ignores them."""

    def emit(self, event: str, context: RequestContext) -> None:
        pass


class LoggingCsrfObserver(CsrfObserver):
    """Writes guard events to the application log."""

    def emit(self, event: str, context: RequestContext) -> None:
        if event == EVENT_ERROR:
            level = logging.ERROR
        elif event == EVENT_REJECTED:
            level = logging.WARNING
        else:
            level = logging.DEBUG
        log_csrf_event(event, context.as_log_dict(), level=level)
