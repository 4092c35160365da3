"""JWT issuing/decoding and password hashing helpers."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from uniadmin.config import settings


def make_tokens(user_id: str, roles: list[str], email: str = "") -> tuple[str, str]:
    """Return (access_token, refresh_token)."""
    now = datetime.now(timezone.utc)
    access_payload = {
        "sub": user_id,
        "roles": roles,
        "email": email,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "type": "access",
    }
    refresh_payload = {
        "sub": user_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_refresh_token_expire_days),
        "type": "refresh",
        "jti": secrets.token_hex(8),
    }

    key = settings.jwt_secret
    algo = settings.jwt_algorithm
    return jwt.encode(access_payload, key, algorithm=algo), jwt.encode(refresh_payload, key, algorithm=algo)


def decode_token(token: str) -> dict:
    """Decode and verify a token; raises ValueError when it is invalid."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except JWTError as exc:
        raise ValueError(f"Invalid token: {exc}") from exc


def blocklist_key(token: str) -> str:
    return f"uniadmin:token:blocked:{hashlib.sha256(token.encode()).hexdigest()[:32]}"


def hash_password(password: str) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()
    return f"{salt}:{digest}"


def verify_password(password: str, hashed: str) -> bool:
    parts = hashed.split(":", 1)
    if len(parts) != 2:
        return False
    salt, stored = parts
    digest = hashlib.sha256(f"{salt}:{password}".encode()).hexdigest()
    return secrets.compare_digest(digest, stored)
