"""Password hashing with argon2id.

Hashes use a fixed salt taken from configuration. Verification goes
through argon2-cffi, which compares digests in constant time. A wrong
password is reported as ``False``; a broken hash or a hashing failure
raises PasswordHashError so callers can tell the two apart.
"""

from argon2 import PasswordHasher as Argon2Verifier
from argon2 import Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)
from argon2.low_level import hash_secret

from rolegraph.core.constants import ARGON2_HASH_LENGTH, MIN_SALT_LENGTH
from rolegraph.core.errors import PasswordHashError


class PasswordHasher:
    """argon2id hasher bound to one salt and one set of cost parameters.

    Usage:
        hasher = PasswordHasher(salt=settings.password_salt)
        stored = hasher.hash("s3cret-passw0rd")
        hasher.verify("s3cret-passw0rd", stored)  # True
    """

    def __init__(
        self,
        salt: str,
        time_cost: int = 3,
        memory_cost: int = 65536,
        parallelism: int = 4,
    ) -> None:
        self.salt = salt.encode()
        self.time_cost = time_cost
        self.memory_cost = memory_cost
        self.parallelism = parallelism
        self._verifier = Argon2Verifier(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=ARGON2_HASH_LENGTH,
            type=Type.ID,
        )

    def hash(self, password: str) -> str:
        """Hash a password.

        Args:
            password: Plain text password

        Returns:
            Encoded argon2id hash

        Raises:
            PasswordHashError: If the salt is unusable or argon2 fails
        """
        if len(self.salt) < MIN_SALT_LENGTH:
            raise PasswordHashError(details={"reason": "salt_too_short"})
        try:
            encoded = hash_secret(
                password.encode(),
                self.salt,
                time_cost=self.time_cost,
                memory_cost=self.memory_cost,
                parallelism=self.parallelism,
                hash_len=ARGON2_HASH_LENGTH,
                type=Type.ID,
            )
        except HashingError as exc:
            raise PasswordHashError() from exc
        return encoded.decode()

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash.

        Args:
            password: Plain text password to verify
            password_hash: Stored argon2 hash

        Returns:
            True if the password matches, False otherwise

        Raises:
            PasswordHashError: If the stored hash cannot be parsed or checked
        """
        try:
            return self._verifier.verify(password_hash, password)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as exc:
            raise PasswordHashError() from exc
