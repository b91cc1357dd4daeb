"""JWT issue and verification for access and refresh tokens.

Both tokens are HS256 and carry the user id in ``sub``; a ``type`` claim
keeps a refresh token from being accepted as an access token even if the
two secrets were ever configured identically.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from shipsy.core.logging_config import get_logger
from shipsy.core_settings import get_settings

logger = get_logger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(Exception):
    """Raised for any token that fails verification; the cause is not exposed."""


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: Optional[str]
    kind: str
    issued_at: int
    expires_at: int


def _secret_for(kind: str) -> str:
    settings = get_settings()
    return settings.JWT_ACCESS_SECRET if kind == ACCESS else settings.JWT_REFRESH_SECRET


def _encode(claims: dict, kind: str, lifetime: timedelta) -> tuple:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    expires = now + lifetime
    payload = {**claims, "type": kind, "iat": now, "exp": expires}
    token = jwt.encode(payload, _secret_for(kind), algorithm=get_settings().JWT_ALG)
    return token, int((expires - now).total_seconds())


def issue_token_pair(user_id: str, email: str) -> TokenPair:
    settings = get_settings()
    access_token, expires_in = _encode(
        {"sub": user_id, "email": email},
        ACCESS,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    refresh_token, _ = _encode(
        {"sub": user_id},
        REFRESH,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return TokenPair(access_token=access_token, refresh_token=refresh_token, expires_in=expires_in)


def verify_token(token: str, kind: str = ACCESS) -> TokenPayload:
    try:
        claims = jwt.decode(
            token,
            _secret_for(kind),
            algorithms=[get_settings().JWT_ALG],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected {kind} token: {type(e).__name__}")
        raise InvalidToken() from e

    if claims.get("type") != kind:
        logger.debug(f"Rejected {kind} token: wrong token type")
        raise InvalidToken()

    return TokenPayload(
        user_id=str(claims["sub"]),
        email=claims.get("email"),
        kind=kind,
        issued_at=int(claims["iat"]),
        expires_at=int(claims["exp"]),
    )


def decode_token(token: str) -> Optional[dict]:
    """Read claims without checking the signature. Never use for authorization."""
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError:
        return None


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
