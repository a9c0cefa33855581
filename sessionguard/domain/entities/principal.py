"""Principal domain entity - the authenticated identity."""

from dataclasses import dataclass

from sessionguard.domain.exceptions import InvalidEntityStateException

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Principal:
    """
    The identity an access token speaks for.

    Immutable for the lifetime of a session. There is exactly one privileged
    role in this system, so role is validated rather than modelled as a
    hierarchy.
    """

    user_id: str
    email: str
    role: str = ADMIN_ROLE

    def __post_init__(self):
        if not self.user_id:
            raise InvalidEntityStateException("Principal must have a user id.")

        if not self.email or "@" not in self.email:
            raise InvalidEntityStateException(
                f"Invalid email address: '{self.email}'. Email must contain '@' symbol."
            )

        if self.role != ADMIN_ROLE:
            raise InvalidEntityStateException(
                f"Unsupported role: '{self.role}'. Only '{ADMIN_ROLE}' is recognised."
            )
