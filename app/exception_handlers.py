"""Global exception handlers for the FastAPI application."""

from typing import Dict, List

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.logging_config import get_logger, log_error

logger = get_logger()


async def not_found_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle 404 Not Found errors."""
    logger.warning(f"404 error: {request.url} - {exc.detail}")

    return JSONResponse(status_code=404, content={"message": exc.detail or "Not Found"})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn request validation errors into a field -> messages map."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        location = [part for part in error.get("loc", ()) if part != "body"]
        field = str(location[-1]) if location else "body"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))

    logger.info(f"Validation failed: {request.method} {request.url.path} - {sorted(errors)}")

    first_error = next(iter(errors.values()))[0] if errors else "The given data was invalid."
    return JSONResponse(status_code=422, content={"message": first_error, "errors": errors})


async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle 500 Internal Server Error."""
    log_error(exc, request, context="unhandled_exception")

    return JSONResponse(status_code=500, content={"message": "Server Error"})
