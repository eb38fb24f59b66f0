"""Password hashing and access-token helpers."""
from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta

from jose import JWTError, jwt

from threadline.core.settings import settings
from threadline.db.time import utcnow

_PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, *, salt: bytes | None = None) -> str:
    """Return a salted PBKDF2-SHA256 hash encoded as ``salt$digest`` hex."""
    salt = salt if salt is not None else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Check ``password`` against a value produced by :func:`hash_password`."""
    try:
        salt_hex, digest_hex = stored.split("$", 1)
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False
    candidate = hash_password(password, salt=salt).split("$", 1)[1]
    return hmac.compare_digest(candidate, digest_hex)


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Issue a signed JWT for ``subject`` (a profile id)."""
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, object] = {"sub": subject, "exp": expire}
    if extra_claims:
        claims.update(extra_claims)
    encoded_jwt: str = jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> str | None:
    """Return the subject of a valid token, or None if it cannot be trusted."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) else None
