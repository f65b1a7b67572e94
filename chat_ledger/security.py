"""Credential hashing and webhook signature checks.

Uses the ``bcrypt`` library directly for account credentials.
Webhook bodies are signed by the messaging platform with
HMAC-SHA256 over the raw body, base64-encoded.
"""

import base64
import hashlib
import hmac
import secrets

import bcrypt

from chat_ledger.config import get_settings


def hash_password(plain: str) -> str:
    """Hash a plain-text password with bcrypt. Returns a utf-8 hash string."""
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def unusable_password_hash() -> str:
    """Hash of a random token nobody knows, for shadow accounts."""
    return hash_password(secrets.token_urlsafe(32))


def sign_body(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """Constant-time check of a webhook signature header."""
    if not signature or not secret:
        return False
    return hmac.compare_digest(sign_body(body, secret), signature)
