import bcrypt

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """bcrypt hashing with a cost factor fixed at construction."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Generate a salted bcrypt hash for a password."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, hashed_password: str | None) -> bool:
        """Verify a password against a bcrypt hash."""
        if not hashed_password:
            return False

        if isinstance(hashed_password, str):
            hashed_password = hashed_password.encode("utf-8")

        try:
            return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password)
        except ValueError:
            # Stored value is not a bcrypt hash (e.g. legacy plaintext row)
            return False
