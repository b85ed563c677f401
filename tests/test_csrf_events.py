"""Tests for CSRF guard event contexts and the logging observer."""

import logging

from starlette.requests import Request

from app.security import csrf_events
from app.security.csrf_events import (
    EVENT_ACCEPTED,
    EVENT_ERROR,
    EVENT_REJECTED,
    EVENT_SKIPPED,
    LoggingCsrfObserver,
    build_request_context,
    request_from_frontend,
)

STATEFUL_DOMAINS = ["localhost", "localhost:3000", "127.0.0.1"]


def make_request(headers=None, method="POST", path="/api/users"):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": method,
            "scheme": "http",
            "path": path,
            "query_string": b"",
            "headers": raw_headers,
            "client": ("10.0.0.5", 51000),
            "server": ("test", 80),
        }
    )


def make_context(**headers):
    return build_request_context(
        make_request(headers),
        session_id="0123456789abcdef",
        cookie_name="XSRF-TOKEN",
        primary_header="X-CSRF-TOKEN",
        secondary_header="X-XSRF-TOKEN",
        stateful_domains=STATEFUL_DOMAINS,
    )


def test_referer_host_with_port_matches():
    request = make_request({"Referer": "http://localhost:3000/users/1"})

    assert request_from_frontend(request, STATEFUL_DOMAINS) is True


def test_origin_is_used_without_referer():
    request = make_request({"Origin": "http://127.0.0.1:8080"})

    assert request_from_frontend(request, STATEFUL_DOMAINS) is True


def test_unknown_host_is_not_frontend():
    request = make_request({"Referer": "https://evil.example.com/"})

    assert request_from_frontend(request, STATEFUL_DOMAINS) is False


def test_missing_or_unparseable_source_is_not_frontend():
    assert request_from_frontend(make_request(), STATEFUL_DOMAINS) is False
    assert request_from_frontend(make_request({"Referer": "not a url"}), STATEFUL_DOMAINS) is False


def test_context_collects_request_details():
    context = make_context(**{"X-XSRF-TOKEN": "abc123", "User-Agent": "x" * 300, "Host": "api"})

    assert context.method == "POST"
    assert context.path == "/api/users"
    assert context.client_ip == "10.0.0.5"
    assert context.user_agent == "x" * 100
    assert context.host == "api"
    assert context.secondary_header_token == "abc123"
    assert context.primary_header_token is None
    assert context.from_frontend is False


def test_log_dict_hides_secrets():
    context = make_context(**{"X-CSRF-TOKEN": "abc123"})
    context.form_field_token = "abcd"
    context.extra["reason"] = "token_mismatch"

    data = context.as_log_dict()

    assert "abc123" not in str(data)
    assert data["primary_header_token_length"] == 6
    assert data["form_field_token_length"] == 4
    assert data["cookie_token_length"] == 0
    assert data["session_id"] == "01234567..."
    assert data["reason"] == "token_mismatch"
    assert "extra" not in data


def test_logging_observer_levels(monkeypatch):
    logged = []
    monkeypatch.setattr(
        csrf_events, "log_csrf_event", lambda event, context, level: logged.append((event, level))
    )
    observer = LoggingCsrfObserver()
    context = make_context()

    for event in (EVENT_SKIPPED, EVENT_ACCEPTED, EVENT_REJECTED, EVENT_ERROR):
        observer.emit(event, context)

    assert logged == [
        (EVENT_SKIPPED, logging.DEBUG),
        (EVENT_ACCEPTED, logging.DEBUG),
        (EVENT_REJECTED, logging.WARNING),
        (EVENT_ERROR, logging.ERROR),
    ]
