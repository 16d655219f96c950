"""
Error taxonomy and the JSON error envelope

Services raise AppError subclasses; the handlers registered here turn them
(and anything unexpected) into {"success": false, "error": ..., "message": ...}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ebh.core.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Operational error with an HTTP status"""

    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Missing field, non-positive quantity or density, empty item list"""
    status_code = 400
    error = "Bad Request"


class NotFoundError(AppError):
    """Referenced record does not exist or is soft-deleted"""
    status_code = 404
    error = "Not Found"


class DuplicateError(AppError):
    """Unique value already taken"""
    status_code = 409
    error = "Conflict"


class PersistenceError(AppError):
    """Datastore failure"""
    status_code = 500
    error = "Internal Server Error"


def error_body(error: str, message: str) -> dict:
    return {"success": False, "error": error, "message": message}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.error, exc.message))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    message = "; ".join(parts) or "Invalid request"
    return JSONResponse(status_code=422, content=error_body("Unprocessable Entity", message))


async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception(f"Database error on {request.method} {request.url.path}")
    message = str(exc) if settings.is_development else "Database error, please try again later"
    return JSONResponse(status_code=500, content=error_body("Internal Server Error", message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.is_development else "Internal server error"
    return JSONResponse(status_code=500, content=error_body("Internal Server Error", message))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
