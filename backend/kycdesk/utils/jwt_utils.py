import time
from typing import Optional, Dict, Any

import jwt
from flask import current_app

ALGORITHM = "HS256"
ACCESS_TOKEN = "access"


def _secret() -> str:
    return current_app.config["SECRET_KEY"]


def _default_ttl() -> int:
    return int(current_app.config.get("JWT_TTL_SECONDS") or 60 * 60 * 24 * 7)


def create_access_token(user_id: int, ttl_seconds: int | None = None) -> str:
    """Signed bearer token for a staff user."""
    ttl = _default_ttl() if ttl_seconds is None else int(ttl_seconds)
    issued = int(time.time())
    claims = {
        "sub": str(user_id),
        "iat": issued,
        "exp": issued + ttl,
        "type": ACCESS_TOKEN,
    }
    return jwt.encode(claims, _secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, _secret(), algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


def user_id_from_token(token: str) -> Optional[int]:
    """User id of a valid access token, or None for anything else."""
    claims = decode_token(token)
    if not claims or claims.get("type") != ACCESS_TOKEN:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None


def get_bearer_token(auth_header: str) -> Optional[str]:
    scheme, _, value = (auth_header or "").strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    value = value.strip()
    return value or None
