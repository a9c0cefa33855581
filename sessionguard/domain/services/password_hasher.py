"""Password hashing interface - domain service abstraction.

This is the credential verifier in front of token issuance. It belongs in
the domain layer because one-way secret verification is a SECURITY
REQUIREMENT of the login gate, not an infrastructure detail.

The domain cares that the admin secret is:
1. Never stored in the clear (only its hash is configured)
2. Verifiable at login without being recoverable

The domain does NOT care:
- Which algorithm produced the stored hash (Argon2, bcrypt)
- Which library implements it (pwdlib)
- Implementation details (salt generation, cost parameters)
"""

from abc import ABC, abstractmethod


class IPasswordHasher(ABC):
    """
    Interface for one-way secret hashing and verification.

    Implementations must be cryptographically secure and must compare in
    constant time.
    """

    @abstractmethod
    def hash(self, plain_password: str) -> str:
        """
        Hash a plain text secret.

        Used by operators to produce the ADMIN_PASSWORD_HASH setting.

        Returns:
            Self-describing hash string (algorithm, parameters, salt, digest)

        Example:
            hashed = hasher.hash("my_password")
            # hashed might be: "$argon2id$v=19$m=65536,t=3,p=4$..."
        """
        pass

    @abstractmethod
    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain text secret against a stored hash.

        Returns:
            True if the secret matches, False otherwise (including when the
            stored hash is malformed)
        """
        pass
