"""Main FastAPI application entry point.

This module initializes the Userdesk backend: a user management API whose
state-changing endpoints are protected by a cookie/header double-submit CSRF
guard.

"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from app.config import get_settings
from app.database import AsyncSessionLocal
from app.exception_handlers import (
    internal_server_error_handler,
    not_found_handler,
    validation_error_handler,
)
from app.logging_config import get_logger
from app.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from app.routes import csrf, users
from app.security.csrf_events import LoggingCsrfObserver
from app.security.csrf_middleware import CsrfMiddleware
from app.security.session_store import SessionStore

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Schema changes are applied with Alembic, not at startup.
    """
    logger = get_logger()
    logger.info(f"Starting Userdesk backend ({settings.environment})")

    yield

    logger.info("Shutting down Userdesk backend")


app = FastAPI(
    title="Userdesk",
    description="User management API with CSRF double-submit protection",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.session_store = SessionStore(AsyncSessionLocal, settings.session_lifetime_hours)

# Add middleware (order matters - last added runs first)
# The CSRF guard sits closest to the routes so rejections still get headers and logs
app.add_middleware(CsrfMiddleware, settings=settings, observer=LoggingCsrfObserver())
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)

# Exception handlers
app.add_exception_handler(404, not_found_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(500, internal_server_error_handler)
app.add_exception_handler(Exception, internal_server_error_handler)


# Health check endpoint for monitoring
@app.get("/health")
def health_check():
    """Fast health check endpoint for load balancers and monitoring."""
    return {"status": "ok", "service": "userdesk"}


# Include routers
app.include_router(csrf.router)
app.include_router(users.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="127.0.0.1", port=5000, reload=settings.debug)
