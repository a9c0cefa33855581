"""Application layer exceptions."""


class ApplicationError(Exception):
    """Base application layer exception."""

    def __init__(self, message: str, error_code: str = "APPLICATION_ERROR"):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class InvalidCredentialsError(ApplicationError):
    """
    Raised when login credentials are invalid.

    Deliberately uniform: an unknown email and a wrong password produce the
    same message so the response never reveals which one was wrong.
    """

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, error_code="INVALID_CREDENTIALS")


class RateLimitExceededError(ApplicationError):
    """Raised when an action is attempted too often."""

    def __init__(self, retry_after: int, message: str = "Too many attempts. Please try again later."):
        super().__init__(message, error_code="RATE_LIMITED")
        self.retry_after = retry_after


class InvalidTokenError(ApplicationError):
    """Raised when a token is invalid, expired, revoked, or malformed."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, error_code="INVALID_TOKEN")


REFRESH_TOKEN_ERROR_MESSAGE = "Invalid or expired refresh token"


class TokenReuseDetectedError(InvalidTokenError):
    """
    Raised when an already-rotated refresh token is presented again.

    Callers see exactly what an invalid refresh token produces; the
    distinction only exists for server-side logging and tests.
    """

    def __init__(self, family_id: str):
        super().__init__(REFRESH_TOKEN_ERROR_MESSAGE)
        self.family_id = family_id


class UnauthorizedError(ApplicationError):
    """Raised when a request carries no credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, error_code="UNAUTHORIZED")
