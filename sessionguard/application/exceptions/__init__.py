"""Application layer exceptions."""

from sessionguard.application.exceptions.exceptions import (
    REFRESH_TOKEN_ERROR_MESSAGE,
    ApplicationError,
    InvalidCredentialsError,
    InvalidTokenError,
    RateLimitExceededError,
    TokenReuseDetectedError,
    UnauthorizedError,
)

__all__ = [
    "REFRESH_TOKEN_ERROR_MESSAGE",
    "ApplicationError",
    "InvalidCredentialsError",
    "InvalidTokenError",
    "RateLimitExceededError",
    "TokenReuseDetectedError",
    "UnauthorizedError",
]
