"""
Password hashing utilities using bcrypt.
"""

import bcrypt

# Number of rounds for bcrypt hashing (12 is secure default)
BCRYPT_ROUNDS = 12

# bcrypt only uses the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Password hashing service."""

    def __init__(self, rounds: int = BCRYPT_ROUNDS):
        self.rounds = rounds

    @staticmethod
    def _encode(password: str) -> bytes:
        """Encode and truncate to the bcrypt limit so hash and verify agree."""
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    def hash(self, password: str) -> str:
        """
        Hash a password using bcrypt with a fresh salt.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._encode(password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns False on mismatch. Raises ValueError when ``hashed_password``
        is not a bcrypt digest.
        """
        return bcrypt.checkpw(self._encode(plain_password), hashed_password.encode("utf-8"))

    def needs_rehash(self, hashed_password: str) -> bool:
        """
        Check if a password hash needs to be upgraded.

        bcrypt hashes encode the cost factor: ``$2b$XX$...``.
        """
        parts = hashed_password.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return True
        return int(parts[2]) != self.rounds
