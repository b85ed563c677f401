"""CSRF token bootstrap and debug routes."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from app.config import Settings, get_settings
from app.logging_config import get_logger, log_request
from app.models.session import Session
from app.security.session_store import SessionStore, get_session_store

router = APIRouter()


def set_session_cookies(response: Response, session: Session, settings: Settings) -> None:
    """Attach the session id and script-readable CSRF cookies to a response."""
    max_age = settings.session_lifetime_hours * 3600
    response.set_cookie(
        settings.session_cookie,
        session.session_id,
        max_age=max_age,
        httponly=True,
        secure=settings.session_secure,
        samesite="lax",
    )
    # Not httponly: the client reads it and echoes it back in a header
    response.set_cookie(
        settings.csrf_cookie,
        session.csrf_token,
        max_age=max_age,
        httponly=False,
        secure=settings.session_secure,
        samesite="lax",
    )


async def _load_or_create_session(request: Request, store: SessionStore, settings: Settings):
    session = await store.get(request.cookies.get(settings.session_cookie))
    if session is None:
        session = await store.create()
        get_logger().info(f"Started session {session.session_id[:8]}... for {request.url.path}")
    return session


@router.get(get_settings().bootstrap_path, status_code=204)
async def csrf_cookie(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """Issue the CSRF cookie for the caller's session.

    Starts a session on first contact. The token is never rotated here, so
    calling this repeatedly keeps handing out the current token.
    """
    session = await _load_or_create_session(request, store, settings)
    log_request(request, session_id=session.session_id)

    response = Response(status_code=204)
    set_session_cookies(response, session, settings)
    return response


@router.get("/api/debug/csrf")
async def debug_csrf(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_settings),
):
    """Force-regenerate the session's CSRF token and report the new state.

    Only available when debug mode is on.
    """
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")

    session = await _load_or_create_session(request, store, settings)
    log_request(
        request,
        session_id=session.session_id,
        extra_data={"cookies": sorted(request.cookies.keys())},
    )

    session.csrf_token = await store.regenerate_token(session.session_id)
    get_logger().info(f"Regenerated CSRF token for session {session.session_id[:8]}...")

    response = JSONResponse(
        content={
            "success": True,
            "csrf_token": session.csrf_token,
            "session_id": session.session_id,
            "cookies_received": sorted(request.cookies.keys()),
            "stateful_domains": settings.stateful_domains,
        }
    )
    set_session_cookies(response, session, settings)
    return response
