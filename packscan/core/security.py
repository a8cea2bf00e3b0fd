"""
Access tokens and signed storage URLs.

Both are HMAC-SHA256 signatures keyed with ``Settings.secret_key``. A token
is ``<base64url payload>.<base64url signature>`` where the payload holds the
user id and an expiry timestamp.
"""

import base64
import hashlib
import hmac
import json
import time
from typing import Optional
from urllib.parse import quote, urlencode


class InvalidTokenError(Exception):
    """Raised when an access token is malformed, tampered with or expired."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(text + padding)


def _sign(secret_key: str, message: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).digest()
    return _b64encode(digest)


def _matches(signature: str, expected: str) -> bool:
    return hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8"))


def create_access_token(user_id: str, secret_key: str, expires_minutes: int, now: Optional[float] = None) -> str:
    """Issue a bearer token for ``user_id``."""
    issued = now if now is not None else time.time()
    payload = json.dumps({"sub": user_id, "exp": int(issued + expires_minutes * 60)}, separators=(",", ":"))
    body = _b64encode(payload.encode("utf-8"))
    return f"{body}.{_sign(secret_key, body)}"


def verify_access_token(token: str, secret_key: str, now: Optional[float] = None) -> str:
    """
    Verify a bearer token.

    Returns:
        The user id the token was issued for

    Raises:
        InvalidTokenError: if the token is malformed, forged or expired
    """
    try:
        body, signature = token.split(".", 1)
    except (AttributeError, ValueError):
        raise InvalidTokenError("Malformed token")

    if not _matches(signature, _sign(secret_key, body)):
        raise InvalidTokenError("Invalid token signature")

    try:
        payload = json.loads(_b64decode(body))
        user_id = payload["sub"]
        expires = int(payload["exp"])
    except (ValueError, KeyError, TypeError):
        raise InvalidTokenError("Malformed token payload")

    current = now if now is not None else time.time()
    if expires < current:
        raise InvalidTokenError("Token expired")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidTokenError("Token has no subject")
    return user_id


def sign_storage_path(path: str, secret_key: str, expires: int) -> str:
    return _sign(secret_key, f"{path}:{expires}")


def build_signed_url(path: str, secret_key: str, ttl_seconds: int,
                     prefix: str = "/api/v1/storage", now: Optional[float] = None) -> str:
    """Time-limited URL for a stored object."""
    current = now if now is not None else time.time()
    expires = int(current + ttl_seconds)
    query = urlencode({"expires": expires, "signature": sign_storage_path(path, secret_key, expires)})
    return f"{prefix}/{quote(path)}?{query}"


def verify_signed_path(path: str, expires: int, signature: str, secret_key: str,
                       now: Optional[float] = None) -> bool:
    current = now if now is not None else time.time()
    if expires < current:
        return False
    return _matches(signature, sign_storage_path(path, secret_key, expires))
