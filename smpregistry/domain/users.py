"""Registry users and password hashing."""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from ..errors import ValidationError

HASH_ALGORITHM = 'pbkdf2_sha256'
HASH_ITERATIONS = 260000


def hash_password(password: str, salt: str = None, iterations: int = HASH_ITERATIONS) -> str:
    """
    Hash a password as 'pbkdf2_sha256$<iterations>$<salt>$<hex digest>'.

    Raises:
        ValidationError: If the password is empty
    """
    if not isinstance(password, str) or not password:
        raise ValidationError("Password must not be empty")
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt.encode('utf-8'), iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of `password` against a stored hash."""
    if not password or not password_hash:
        return False
    try:
        algorithm, iterations, salt, _ = password_hash.split('$', 3)
        iterations = int(iterations)
    except ValueError:
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    candidate = hash_password(password, salt=salt, iterations=iterations)
    return hmac.compare_digest(candidate, password_hash)


@dataclass
class User:
    """A registry user; service groups reference users by `user_id`."""

    user_id: str
    password_hash: str

    def __post_init__(self):
        if not isinstance(self.user_id, str) or not self.user_id.strip():
            raise ValidationError("User requires a non-empty name")
        if not self.password_hash:
            raise ValidationError(f"User {self.user_id} requires a password hash")

    @classmethod
    def create(cls, user_id: str, password: str) -> 'User':
        return cls(user_id, hash_password(password))

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    def __repr__(self) -> str:
        return f"User(user_id={self.user_id!r})"
