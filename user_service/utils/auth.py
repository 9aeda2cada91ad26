"""Authentication utilities"""
import hashlib
import secrets

import bcrypt

from user_service.config import settings

# bcrypt only consumes the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = None) -> str:
    """Hash a plaintext password with bcrypt"""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Compare a plaintext password against a stored bcrypt hash"""
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def generate_token() -> str:
    """Generate a random one-time token (32 bytes, hex)"""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Hash a one-time token using SHA256 so it can be looked up by digest"""
    return hashlib.sha256(token.encode()).hexdigest()
