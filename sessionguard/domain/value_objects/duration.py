"""Duration value object.

Token lifetimes and rate-limit windows are configured as short strings
("15m", "7d", "30s"). They are parsed exactly once, when settings are
loaded, into a Duration; nothing downstream ever sees the raw string.
"""

import re
from dataclasses import dataclass
from datetime import timedelta

from sessionguard.domain.exceptions import InvalidDurationException

_DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
}


@dataclass(frozen=True)
class Duration:
    """
    A non-negative span of time with whole-second precision.

    Usage:
        ttl = Duration.parse("15m")
        ttl.seconds        # 900
        ttl.as_timedelta() # timedelta(minutes=15)
    """

    seconds: int

    def __post_init__(self):
        if self.seconds < 0:
            raise InvalidDurationException(f"{self.seconds}s")

    @classmethod
    def parse(cls, value: str) -> "Duration":
        """
        Parse a duration string of the form <number><unit>.

        Units: s (seconds), m (minutes), h (hours), d (days).

        Raises:
            InvalidDurationException: If the string is malformed
        """
        match = _DURATION_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            raise InvalidDurationException(str(value))

        amount, unit = match.groups()
        return cls(seconds=int(amount) * _UNIT_SECONDS[unit])

    def as_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)

    def __str__(self) -> str:
        for unit in ("d", "h", "m"):
            size = _UNIT_SECONDS[unit]
            if self.seconds and self.seconds % size == 0:
                return f"{self.seconds // size}{unit}"
        return f"{self.seconds}s"
