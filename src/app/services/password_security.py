"""
Password reset credential helpers.

Reset tokens are bearer secrets: the plaintext leaves the service exactly
once and only its SHA-256 digest is stored. Passwords are hashed with bcrypt.
"""

import hashlib
import secrets

import bcrypt

from config import ApplicationConfig


def generate_reset_token() -> str:
    """URL-safe random token with PASSWORD_RESET_TOKEN_BYTES of entropy (256 bits by default)"""
    return secrets.token_urlsafe(ApplicationConfig.PASSWORD_RESET_TOKEN_BYTES)


def hash_reset_token(token: str) -> str:
    """SHA-256 hex digest used as the lookup key for a reset token"""
    return hashlib.sha256(token.encode()).hexdigest()


def hash_password(password: str) -> str:
    password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt(ApplicationConfig.BCRYPT_ROUNDS))
    return password_hash.decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False
