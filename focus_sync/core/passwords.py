"""Password hashing with salted PBKDF2-HMAC-SHA256."""

import base64
import hashlib
import secrets

from focus_sync.core.config import constants, settings


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<digest>``."""
    rounds = iterations or settings.password_hash_iterations
    salt = secrets.token_bytes(constants.PASSWORD_SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return "$".join(
        [
            constants.PASSWORD_HASH_ALGORITHM,
            str(rounds),
            base64.b64encode(salt).decode("ascii"),
            base64.b64encode(digest).decode("ascii"),
        ]
    )


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash in constant time.

    Malformed hashes never match.
    """
    try:
        algorithm, rounds, salt_b64, digest_b64 = password_hash.split("$")
        if algorithm != constants.PASSWORD_HASH_ALGORITHM:
            return False
        salt = base64.b64decode(salt_b64)
        expected = base64.b64decode(digest_b64)
        candidate = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, int(rounds))
    except ValueError:
        return False
    return secrets.compare_digest(candidate, expected)
