"""Global exception handlers for the FastAPI application.

Maps the exception hierarchy to fixed HTTP responses:

- ``ValidationError`` and ``RequestValidationError``: 400 with field errors
- ``NotFoundError``: 404 with ``"<Resource> not found"``
- ``UpstreamError``: 503 with a generic message; the cause is only logged
- ``HTTPException``: its status code and detail
- anything else: 500 with a generic message

Validation failures and lookup misses are normal outcomes and are logged
below WARNING. Failures are logged with sanitized context.
"""

from collections.abc import Mapping

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from loguru import logger
from starlette.exceptions import HTTPException

from killboard.api.constants import (
    CORRELATION_ID_HEADER,
    INTERNAL_ERROR_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    VALIDATION_FAILED_MESSAGE,
)
from killboard.api.schemas.errors import ErrorResponse, FieldErrorDetail
from killboard.api.utils.responses import ORJSONResponse
from killboard.core.config import get_settings
from killboard.core.context import RequestContext
from killboard.core.error_context import sanitize_error_context
from killboard.core.exceptions import (
    FieldError,
    KillboardError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)


def _error_response(
    status_code: int,
    body: ErrorResponse,
    headers: Mapping[str, str] | None = None,
) -> Response:
    """Build the JSON error response, carrying the correlation ID.

    Responses for unhandled exceptions are sent from outside the request
    context middleware, so the header is set here as well.
    """
    response_headers = dict(headers or {})
    if correlation_id := RequestContext.get_correlation_id():
        response_headers[CORRELATION_ID_HEADER] = correlation_id
    return ORJSONResponse(
        status_code=status_code,
        content=body.to_content(),
        headers=response_headers,
    )


def _validation_body(errors: tuple[FieldError, ...]) -> ErrorResponse:
    return ErrorResponse(
        status_message=VALIDATION_FAILED_MESSAGE,
        errors=[FieldErrorDetail(field=e.field, message=e.message) for e in errors],
    )


async def killboard_error_handler(request: Request, exc: Exception) -> Response:
    """Handle KillboardError exceptions.

    Args:
        request: The request that caused the exception
        exc: The KillboardError exception to handle

    Returns:
        Response: ORJSONResponse with the mapped status and body

    Raises:
        TypeError: If exc is not a KillboardError instance
    """
    if not isinstance(exc, KillboardError):
        raise TypeError(f"Expected KillboardError, got {type(exc).__name__}")

    if isinstance(exc, ValidationError):
        logger.debug(
            "Validation failed for {}",
            request.url.path,
            fields=[error.field for error in exc.errors],
        )
        return _error_response(
            status.HTTP_400_BAD_REQUEST, _validation_body(exc.errors)
        )

    if isinstance(exc, NotFoundError):
        logger.info("{} for {}", exc.message, request.url.path)
        return _error_response(
            status.HTTP_404_NOT_FOUND, ErrorResponse(status_message=exc.message)
        )

    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": request.url.path,
            "error_code": exc.error_code,
        },
    )

    if isinstance(exc, UpstreamError):
        logger.opt(exception=exc.cause).error(
            "Upstream failure: {}", exc.message, **error_context
        )
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            ErrorResponse(status_message=SERVICE_UNAVAILABLE_MESSAGE),
        )

    logger.error("Unhandled application error: {}", exc.message, **error_context)
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(status_message=INTERNAL_ERROR_MESSAGE),
    )


async def validation_error_handler(request: Request, exc: Exception) -> Response:
    """Handle FastAPI RequestValidationError exceptions.

    Produces the same 400 body as the validation gateway.

    Raises:
        TypeError: If exc is not a RequestValidationError instance
    """
    if not isinstance(exc, RequestValidationError):
        raise TypeError(f"Expected RequestValidationError, got {type(exc).__name__}")

    errors = tuple(
        FieldError(
            # Drop the location prefix ("path", "query", "body")
            field=".".join(str(part) for part in error.get("loc", ())[1:]) or "root",
            message=error.get("msg", "Invalid value"),
        )
        for error in exc.errors()
    )
    logger.debug(
        "Request validation failed for {}",
        request.url.path,
        fields=[error.field for error in errors],
    )
    return _error_response(status.HTTP_400_BAD_REQUEST, _validation_body(errors))


async def http_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle Starlette HTTPException, such as unknown routes.

    Raises:
        TypeError: If exc is not an HTTPException instance
    """
    if not isinstance(exc, HTTPException):
        raise TypeError(f"Expected HTTPException, got {type(exc).__name__}")

    logger.info(
        "HTTP exception",
        status=exc.status_code,
        method=request.method,
        path=request.url.path,
        detail=exc.detail,
    )
    return _error_response(
        exc.status_code,
        ErrorResponse(status_message=str(exc.detail)),
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> Response:
    """Handle any exception no other handler claimed.

    Clients only get a generic message; in development ``debugInfo`` names
    the exception type.
    """
    error_context = sanitize_error_context(
        exc,
        {
            "request_method": request.method,
            "request_path": request.url.path,
        },
    )
    logger.opt(exception=exc).error(
        "Unhandled exception: {}", type(exc).__name__, **error_context
    )

    debug_info = None
    if get_settings().environment == "development":
        debug_info = {"exception_type": type(exc).__name__}

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(status_message=INTERNAL_ERROR_MESSAGE, debug_info=debug_info),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(KillboardError, killboard_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
