"""Password hashing (PBKDF2-SHA256, werkzeug-compatible format)."""

import hashlib
import hmac
import secrets

PBKDF2_ITERATIONS = 260000
PBKDF2_HASH_FUNC = "sha256"
SALT_LENGTH = 16


def generate_password_hash(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Generate a PBKDF2-SHA256 password hash."""
    if not password:
        raise ValueError("Password cannot be empty")
    salt = secrets.token_hex(SALT_LENGTH)
    dk = hashlib.pbkdf2_hmac(
        PBKDF2_HASH_FUNC,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return f"pbkdf2:{PBKDF2_HASH_FUNC}:{iterations}${salt}${dk.hex()}"


def check_password_hash(pwhash: str, password: str) -> bool:
    """Verify a password against a PBKDF2-SHA256 hash."""
    if not pwhash or not password:
        return False
    if not pwhash.startswith(f"pbkdf2:{PBKDF2_HASH_FUNC}:"):
        return False

    parts = pwhash.split("$")
    if len(parts) != 3:
        return False
    header, salt, stored_hash = parts

    try:
        iterations = int(header.split(":")[-1])
    except ValueError:
        return False

    dk = hashlib.pbkdf2_hmac(
        PBKDF2_HASH_FUNC,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
    )
    return hmac.compare_digest(dk.hex(), stored_hash)
