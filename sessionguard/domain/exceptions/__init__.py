"""Domain exceptions - business rule violations and declared faults."""

from sessionguard.domain.exceptions.domain_exceptions import (
    DomainException,
    InvalidDurationException,
    InvalidEntityStateException,
    StoreUnavailableException,
)

__all__ = [
    "DomainException",
    "InvalidEntityStateException",
    "InvalidDurationException",
    "StoreUnavailableException",
]
