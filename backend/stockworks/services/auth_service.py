# Overview: Credential helpers: bcrypt for the reset password, SHA-256 for API keys.

"""
WHY two schemes:
- The reset password is low-entropy and human-chosen, so it is hashed with
  bcrypt (cost factor from config BCRYPT_ROUNDS).
- API keys are 32 random bytes, so a fast SHA-256 digest is sufficient and
  lets a key be looked up by its hash.
"""

import hashlib
import secrets

import bcrypt
from flask import current_app

from ..errors import ValidationError

MIN_RESET_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    """Hash a reset password with bcrypt."""
    if password is None or len(password.strip()) < MIN_RESET_PASSWORD_LENGTH:
        raise ValidationError(
            f"Reset password must be at least {MIN_RESET_PASSWORD_LENGTH} characters long"
        )
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.strip().encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Returns False for a missing hash or a malformed one instead of raising.
    """
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def generate_api_key() -> str:
    """64-character hex key (32 bytes of entropy); only its hash is stored."""
    return secrets.token_hex(32)


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()
