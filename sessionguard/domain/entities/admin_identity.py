"""The configured administrator identity."""

from dataclasses import dataclass

from sessionguard.domain.entities.principal import ADMIN_ROLE, Principal

ADMIN_USER_ID = "admin-1"


@dataclass(frozen=True)
class AdminIdentity:
    """
    The single account allowed to sign in.

    Only the hash of the password is ever held. An identity with an empty
    email or hash is "unconfigured": nobody can log in as it, and tokens
    naming it no longer resolve to a principal.
    """

    email: str
    password_hash: str
    user_id: str = ADMIN_USER_ID

    @property
    def is_configured(self) -> bool:
        return bool(self.email and self.password_hash)

    def principal(self) -> Principal:
        return Principal(user_id=self.user_id, email=self.email, role=ADMIN_ROLE)

    def resolve(self, user_id: str) -> Principal | None:
        """Return the principal for ``user_id``, or None if it is not this admin."""
        if user_id != self.user_id or not self.email:
            return None
        return self.principal()
