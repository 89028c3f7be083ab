"""
Service error taxonomy and the FastAPI handlers that render it.
"""
import time
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None


class StandardErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
    timestamp: float


class ServiceError(Exception):
    """Base class for every error a service operation may raise."""
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, code: str = None, context: Dict[str, Any] = None):
        self.message = message
        if code:
            self.code = code
        self.context = context or {}
        super().__init__(message)


class ValidationError(ServiceError):
    """Bad caller input. Never retried."""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    status_code = 401
    code = "UNAUTHORIZED"


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


class UpstreamError(ServiceError):
    """Provider call failed or returned unusable data. Caller may retry."""
    status_code = 502
    code = "UPSTREAM_ERROR"


class StoreError(ServiceError):
    status_code = 500
    code = "STORE_ERROR"


def create_error_response(code: str, message: str, status_code: int, context: Dict[str, Any] = None) -> JSONResponse:
    body = StandardErrorResponse(
        error=ErrorDetail(code=code, message=message, context=context or None),
        timestamp=time.time(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def service_exception_handler(request: Request, exc: ServiceError):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return create_error_response(exc.code, exc.message, exc.status_code, exc.context)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first_error = exc.errors()[0]
    field = ".".join(str(loc) for loc in first_error.get("loc", []))
    message = first_error.get("msg", "Validation error")
    logger.warning(f"Request validation failed on {request.url.path}: {field}: {message}")
    return create_error_response(
        ValidationError.code,
        f"Validation error on field '{field}': {message}",
        ValidationError.status_code,
        {"field": field},
    )


def add_error_handlers(app):
    app.add_exception_handler(ServiceError, service_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
