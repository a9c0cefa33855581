"""Exception handlers for converting exceptions to HTTP responses.

This module provides a scalable approach to exception handling.
Instead of creating individual handlers for each exception, we use
base exception handlers that automatically determine the HTTP status
code based on the error_code attribute.

Every error response has the same shape:
    {"success": false, "error": "<message>", "error_code": "<CODE>"}

To add a new exception:
1. Create the exception class (inheriting from ApplicationError or DomainException)
2. Add its error_code to ERROR_CODE_TO_HTTP_STATUS in error_codes.py
3. That's it! No need to create or register a new handler.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sessionguard.application.exceptions import ApplicationError, RateLimitExceededError
from sessionguard.domain.exceptions import DomainException
from sessionguard.presentation.error_codes import get_http_status_for_error_code

logger = logging.getLogger(__name__)


def _error_body(message: str, error_code: str) -> dict:
    return {"success": False, "error": message, "error_code": error_code}


async def application_error_handler(
    request: Request, exc: ApplicationError
) -> JSONResponse:
    """
    Handle ALL application layer exceptions.

    The HTTP status code is determined by the error_code attribute using
    the ERROR_CODE_TO_HTTP_STATUS mapping. Rate limit errors also carry a
    Retry-After header.
    """
    http_status = get_http_status_for_error_code(exc.error_code)

    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=http_status,
        content=_error_body(exc.message, exc.error_code),
        headers=headers,
    )


async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """
    Handle ALL domain layer exceptions.

    StoreUnavailableException lands here and becomes a 503.
    """
    http_status = get_http_status_for_error_code(exc.error_code)
    if http_status >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"{exc.error_code} on {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=http_status,
        content=_error_body(exc.message, exc.error_code),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors from request data.

    Returns a list of all validation errors with field locations and
    messages. Submitted values are never echoed back (they may be passwords).
    """
    validation_errors = []
    for error in exc.errors():
        # Build field path (e.g., "body.email")
        field_location = ".".join(str(loc) for loc in error["loc"])

        validation_errors.append(
            {
                "field": field_location,
                "message": error["msg"],
            }
        )

    content = _error_body("Validation failed", "VALIDATION_ERROR")
    content["errors"] = validation_errors

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=content,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other unhandled exceptions.

    This is the catch-all handler for any unexpected errors.
    """
    # Log the actual error for debugging
    logger.error(f"Unhandled error: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("An internal server error occurred", "INTERNAL_SERVER_ERROR"),
    )
