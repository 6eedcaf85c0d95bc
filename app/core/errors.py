"""
app/core/errors.py

Purpose: Maps exceptions to the ErrorResponse body

- SolError subclasses keep their own status and code
- Upstream failures (Airtable, OpenAI) are logged with the request path
- Unexpected exceptions become INTERNAL_ERROR without leaking text in production
"""

from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import ExternalServiceError, SolError, StoreError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal error occurred. Please try again later."


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


def jsonable_errors(exc: RequestValidationError) -> List[dict]:
    """Strip non-serializable context (e.g. raised exceptions) from Pydantic errors."""
    errors = []
    for error in exc.errors():
        cleaned = {key: value for key, value in error.items() if key != "ctx"}
        if "ctx" in error:
            cleaned["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(cleaned)
    return errors


def _log_sol_error(request: Request, exc: SolError):
    path = f"{request.method} {request.url.path}"

    if isinstance(exc, StoreError):
        logger.error(f"{path} -> Airtable failure (status {exc.status}): {exc.message}")
    elif isinstance(exc, ExternalServiceError):
        logger.error(f"{path} -> {exc.code}: {exc.message}")
    elif exc.status_code >= 500:
        logger.error(f"{path} -> {exc.code}: {exc.message} ({exc.details})")
    else:
        logger.info(f"{path} -> {exc.status_code} {exc.code}: {exc.message}")


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(SolError)
    async def sol_exception_handler(request: Request, exc: SolError):
        _log_sol_error(request, exc)
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles routing errors (unknown path, wrong method).
        """
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = jsonable_errors(exc)
        logger.info(f"{request.method} {request.url.path} -> invalid body ({len(errors)} errors)")
        return error_response(422, "Input validation failed", "VALIDATION_ERROR", errors)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for exceptions that escaped the route wrappers.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "method": request.method,
                "url": str(request.url),
                "client": request.client.host if request.client else "unknown"
            },
            exc_info=True
        )

        message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
