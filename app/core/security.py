"""
JWT session tokens issued once a phone has been proven with an OTP.
Uses PyJWT (not python-jose).
"""
import uuid

import jwt
from jwt.exceptions import InvalidTokenError
from datetime import datetime, timedelta, timezone
from app.config import settings


def create_access_token(user_id: str, role: str = "customer") -> str:
    """
    Short-lived access token (default 30 min).
    Contains user_id (as 'sub') and the user's role so the frontend can route
    to the right dashboard without another lookup.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(minutes=settings.access_token_expire_minutes),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def create_refresh_token(user_id: str) -> str:
    """
    Long-lived refresh token (default 7 days).
    Carries no role: role and ban status are re-read on every refresh.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "refresh",
        "iat": now,
        "exp": now + timedelta(days=settings.refresh_token_expire_days),
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, expected_type: str) -> dict:
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") != expected_type:
        raise InvalidTokenError(f"Not an {expected_type} token")
    return payload


def decode_access_token(token: str) -> dict:
    """Raises jwt.exceptions.InvalidTokenError (or subclass) on any failure."""
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict:
    return _decode(token, "refresh")


def parse_subject(sub: str) -> uuid.UUID:
    """'sub' claim → users.id. A malformed subject is treated like a bad signature."""
    try:
        return uuid.UUID(sub)
    except (TypeError, ValueError):
        raise InvalidTokenError("Malformed subject")
