"""Password hasher implementation using pwdlib.

This is an INFRASTRUCTURE detail. The domain layer (IPasswordHasher interface)
defines WHAT we need (hash and verify operations), while this implementation
defines HOW we do it (Argon2 for new hashes, bcrypt accepted for existing ones).

Dependency flow:
    AuthService (application) → IPasswordHasher (domain) ← PwdlibPasswordHasher (infrastructure)

pwdlib is only imported here (external library isolated to infrastructure).
"""

import logging

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.argon2 import Argon2Hasher
from pwdlib.hashers.bcrypt import BcryptHasher

from sessionguard.domain.services.password_hasher import IPasswordHasher

logger = logging.getLogger(__name__)


class PwdlibPasswordHasher(IPasswordHasher):
    """
    Production password hasher via pwdlib.

    New hashes use Argon2id with pwdlib's defaults (memory cost 64 MB, time
    cost 3, parallelism 4). Verification also accepts bcrypt hashes
    ("$2b$..."), so an ADMIN_PASSWORD_HASH produced by older tooling keeps
    working without a reset.

    Usage:
        hasher = PwdlibPasswordHasher()
        hashed = hasher.hash("admin_password_123")
        hasher.verify("admin_password_123", hashed)  # True
    """

    def __init__(self):
        # The first hasher produces new hashes; the rest are verify-only
        self._password_hash = PasswordHash((Argon2Hasher(), BcryptHasher()))

    def hash(self, plain_password: str) -> str:
        """
        Hash a plain text password using Argon2id.

        Each call generates a unique salt, so hashing the same password
        twice produces different hashes.
        """
        return self._password_hash.hash(plain_password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a plain text password against an Argon2 or bcrypt hash.

        pwdlib identifies the algorithm from the hash prefix and compares in
        constant time.

        Returns:
            True if the password matches, False otherwise (including when
            the hash is empty or in an unrecognised format)
        """
        if not hashed_password:
            return False

        try:
            return self._password_hash.verify(plain_password, hashed_password)
        except UnknownHashError:
            logger.error("Stored password hash is in an unrecognised format")
            return False
        except ValueError as e:
            # Recognised prefix but corrupt body
            logger.error(f"Stored password hash could not be parsed: {e}")
            return False
