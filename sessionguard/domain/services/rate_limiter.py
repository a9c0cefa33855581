"""Rate limiter interface - domain service abstraction.

Counts attempts per (action, identifier) pair inside a fixed window. The
login gate consults it before touching any credential, so a rate-limited
client learns nothing about the admin identity.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """
    Outcome of one attempt.

    Attributes:
        allowed: Whether the attempt may proceed
        remaining: Attempts left in the current window
        retry_after: Seconds until the window ends (0 when allowed)
    """

    allowed: bool
    remaining: int
    retry_after: int = 0


class IRateLimiter(ABC):
    """Interface for per-(action, identifier) attempt limiting."""

    @abstractmethod
    async def try_acquire(
        self,
        action: str,
        identifier: str,
        window_seconds: int,
        max_attempts: int = 1,
    ) -> RateLimitResult:
        """
        Record an attempt and decide whether it is allowed.

        The first attempt in a window starts the window. With the default
        ``max_attempts=1`` every further attempt before the window elapses
        is denied.

        Args:
            action: What is being attempted ("login", "refresh", ...)
            identifier: Who is attempting it (client IP, email, ...)
            window_seconds: Window length
            max_attempts: Attempts allowed per window

        Example:
            result = await limiter.try_acquire("login", "203.0.113.7", 900, 5)
            if not result.allowed:
                raise RateLimitExceededError(retry_after=result.retry_after)
        """
        pass

    @abstractmethod
    async def reset(self, action: str, identifier: str) -> None:
        """Forget all attempts for (action, identifier)."""
        pass
