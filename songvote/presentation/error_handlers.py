"""Centralized error handling for the presentation layer.

Every failure leaves the service as ``{"code": <status>, "message": ...}``.
"""

from typing import Final

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..domain.exceptions import (
    BadRequestError,
    ConflictError,
    DomainError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from ..logging_config import get_logger
from .schemas import ErrorEnvelope

logger: Final = get_logger(__name__)

ERROR_STATUS_CODES: Final[dict[type[DomainError], int]] = {
    BadRequestError: status.HTTP_400_BAD_REQUEST,
    UnauthorizedError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_code_for(error: DomainError) -> int:
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[error_type]  # type: ignore[index]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, message: str) -> JSONResponse:
    envelope = ErrorEnvelope(code=status_code, message=message)
    return JSONResponse(status_code=status_code, content=envelope.model_dump())


async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
    """Translate a domain error kind into its HTTP status."""
    assert isinstance(exc, DomainError)
    status_code = status_code_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "Domain error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        status_code=status_code,
        path=request.url.path,
        method=request.method,
    )
    return error_response(status_code, str(exc))


async def handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    """Malformed bodies are bad requests, not 422s."""
    assert isinstance(exc, RequestValidationError)
    messages = []
    for error in exc.errors():
        field_name = ".".join(str(loc) for loc in error["loc"] if loc != "body")
        messages.append(f"{field_name or 'body'}: {error['msg']}")
    logger.warning(
        "Request validation error occurred",
        errors=messages,
        path=request.url.path,
        method=request.method,
    )
    return error_response(status.HTTP_400_BAD_REQUEST, "; ".join(messages))


async def handle_http_exception(request: Request, exc: Exception) -> JSONResponse:
    """Unknown routes and wrong methods get the same envelope."""
    assert isinstance(exc, StarletteHTTPException)
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_database_error(request: Request, exc: Exception) -> JSONResponse:
    """Database failures that escaped the store's own translation."""
    logger.error(
        "Database error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    if isinstance(exc, IntegrityError):
        return error_response(
            status.HTTP_409_CONFLICT, "a resource with these values already exists"
        )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "a database error occurred"
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unexpected error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "an unexpected error occurred"
    )


def register_error_handlers(app) -> None:
    app.add_exception_handler(DomainError, handle_domain_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
