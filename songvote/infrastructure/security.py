"""Password hashing.

The rest of the application treats hashes as opaque strings.
"""

from passlib.context import CryptContext

from ..constants import DEFAULT_BCRYPT_ROUNDS


class PasswordHasher:
    """Slow one-way hashing with a fresh salt per call."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Check a cleartext password against a stored hash.

        A stored value that is not a recognisable hash never verifies.
        """
        try:
            return bool(self._context.verify(password, password_hash))
        except (ValueError, TypeError):
            return False
