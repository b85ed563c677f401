"""CSRF guard middleware for FastAPI.

Mutating requests must prove they come from a client holding the session's
CSRF token. The token may arrive in a form/JSON body field or in one of two
headers; the first non-empty one is compared to the session copy. Failures
get a dedicated status code so clients can tell them apart from auth errors
and re-prime their token.
"""

from dataclasses import replace
import json
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
import sentry_sdk
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import Settings, get_settings
from app.security.csrf import Mismatch, TokenCandidates, is_exempt, is_reading, validate
from app.security.csrf_events import (
    EVENT_ACCEPTED,
    EVENT_ERROR,
    EVENT_REJECTED,
    EVENT_RESPONSE,
    EVENT_SKIPPED,
    CsrfObserver,
    RequestContext,
    build_request_context,
)
from app.security.session_store import SessionStore

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
MISMATCH_MESSAGE = "CSRF token mismatch."


class CsrfMiddleware(BaseHTTPMiddleware):
    """Reject mutating requests that do not carry the session's CSRF token."""

    def __init__(
        self,
        app,
        settings: Optional[Settings] = None,
        observer: Optional[CsrfObserver] = None,
        session_store: Optional[SessionStore] = None,
    ):
        """Initialize the guard.

        Args:
            app: ASGI application
            settings: Carrier names, exempt paths and mismatch status
            observer: Receives guard events; defaults to a no-op observer
            session_store: Token source; defaults to ``app.state.session_store``
        """
        super().__init__(app)
        self.settings = settings or get_settings()
        self.observer = observer or CsrfObserver()
        self.session_store = session_store

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Validate the request token and forward or reject.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/route handler

        Returns:
            The downstream response, or the mismatch response
        """
        settings = self.settings
        session_id = request.cookies.get(settings.session_cookie)
        context = build_request_context(
            request,
            session_id,
            cookie_name=settings.csrf_cookie,
            primary_header=settings.csrf_header,
            secondary_header=settings.csrf_alt_header,
            stateful_domains=settings.stateful_domains,
        )

        if is_reading(request.method):
            context.extra["skip_reason"] = "read_method"
            self._emit(EVENT_SKIPPED, context)
            return await self._forward(request, call_next, context)

        if is_exempt(request.url.path, settings.csrf_exempt_paths):
            context.extra["skip_reason"] = "exempt_path"
            self._emit(EVENT_SKIPPED, context)
            return await self._forward(request, call_next, context)

        try:
            context.form_field_token = await self._form_token(request)
            session_token = await self._session_store(request).get_csrf_token(session_id)
        except Exception as e:
            context.extra["phase"] = "request"
            context.extra["exception_class"] = type(e).__name__
            context.extra["exception_message"] = str(e)
            self._emit(EVENT_ERROR, context)
            sentry_sdk.capture_exception(e)
            raise

        candidates = TokenCandidates(
            form_field=context.form_field_token,
            primary_header=context.primary_header_token,
            secondary_header=context.secondary_header_token,
        )
        result = validate(candidates, session_token)

        if isinstance(result, Mismatch):
            context.extra["reason"] = result.reason
            context.extra["source"] = result.source
            self._emit(EVENT_REJECTED, context)
            return JSONResponse(
                status_code=settings.csrf_mismatch_status,
                content={"message": MISMATCH_MESSAGE},
            )

        context.extra["source"] = result.source
        self._emit(EVENT_ACCEPTED, context)
        return await self._forward(request, call_next, context)

    async def _forward(
        self, request: Request, call_next: Callable, context: RequestContext
    ) -> Response:
        """Hand the request downstream and report how the response turned out.

        Downstream exceptions are reported and re-raised unchanged.
        """
        try:
            response = await call_next(request)
        except Exception as e:
            self._emit(
                EVENT_ERROR,
                replace(
                    context,
                    extra={
                        **context.extra,
                        "phase": "response",
                        "exception_class": type(e).__name__,
                        "exception_message": str(e),
                    },
                ),
            )
            raise

        cookie_prefix = f"{self.settings.csrf_cookie}="
        self._emit(
            EVENT_RESPONSE,
            replace(
                context,
                extra={
                    **context.extra,
                    "status": response.status_code,
                    "sets_csrf_cookie": any(
                        value.startswith(cookie_prefix)
                        for value in response.headers.getlist("set-cookie")
                    ),
                },
            ),
        )
        return response

    def _session_store(self, request: Request) -> SessionStore:
        if self.session_store is not None:
            return self.session_store
        return request.app.state.session_store

    async def _form_token(self, request: Request) -> Optional[str]:
        """Read the token field from a form or JSON object body."""
        field = self.settings.csrf_field
        content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()

        if content_type in FORM_CONTENT_TYPES:
            # Cache the raw body first so the endpoint can read it again
            await request.body()
            try:
                form = await request.form()
            except (HTTPException, MultiPartException):
                # Unparseable form bodies leave the decision to the headers
                return None
            value = form.get(field)
            await form.close()
            return value if isinstance(value, str) else None

        if content_type == "application/json" or content_type.endswith("+json"):
            body = await request.body()
            if not body:
                return None
            try:
                payload = json.loads(body)
            except ValueError:
                # Malformed JSON is the endpoint's problem, not a token source
                return None
            if isinstance(payload, dict):
                value = payload.get(field)
                return value if isinstance(value, str) else None

        return None

    def _emit(self, event: str, context: RequestContext) -> None:
        try:
            self.observer.emit(event, context)
        except Exception:
            # Observer failures never reach the request path
            pass
