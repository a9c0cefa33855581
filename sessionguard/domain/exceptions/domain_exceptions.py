"""Domain layer exceptions for business rule violations."""


class DomainException(Exception):
    """
    Base exception for domain layer.

    Domain exceptions represent rule violations or infrastructure faults
    that the domain contracts declare, and are raised when an invariant
    cannot be upheld.

    Examples:
        - Invalid entity state
        - Malformed configuration values (durations)
        - Shared store unreachable
    """

    def __init__(self, message: str, error_code: str = "DOMAIN_ERROR"):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
        """
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class InvalidEntityStateException(DomainException):
    """Raised when an entity is in an invalid state."""

    def __init__(self, message: str):
        super().__init__(message, error_code="INVALID_ENTITY_STATE")


class InvalidDurationException(DomainException):
    """Raised when a duration string such as "15m" cannot be parsed."""

    def __init__(self, value: str):
        super().__init__(
            f"Invalid duration: {value!r}. Expected <number><s|m|h|d>, e.g. '15m' or '7d'.",
            error_code="INVALID_DURATION",
        )
        self.value = value


class StoreUnavailableException(DomainException):
    """
    Raised when the shared key/value store cannot be reached.

    Implementations of IKeyValueStore translate their client-specific errors
    (connection refused, timeouts, protocol errors) into this exception so
    the application layer can decide between failing open and failing closed
    without knowing which store is in use.
    """

    def __init__(self, message: str = "Shared store unavailable"):
        super().__init__(message, error_code="STORE_UNAVAILABLE")
