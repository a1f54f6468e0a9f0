"""
Application error taxonomy and the FastAPI handlers that render it.

Every error leaves the API in the same envelope:
    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}
"""

from datetime import datetime
from typing import Any, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from anvago.core.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", details: Optional[Any] = None):
        super().__init__(message)
        self.message = message or self.code.replace("_", " ")
        self.details = details


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"


class UnauthenticatedError(AppError):
    status_code = 401
    code = "unauthenticated"


def error_body(code: str, message: str, details: Optional[Any] = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, exc.details),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Schema failures are reported as 400, not FastAPI's default 422."""
    details = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body("validation_error", "Request validation failed", jsonable_encoder(details)),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    codes = {404: "not_found", 405: "method_not_allowed", 401: "unauthenticated", 403: "forbidden"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(codes.get(exc.status_code, "http_error"), str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions gracefully."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    body = error_body(
        "internal_error",
        str(exc) if settings.debug else "An unexpected error occurred",
    )
    body["error"]["timestamp"] = datetime.utcnow().isoformat()
    return JSONResponse(status_code=500, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
