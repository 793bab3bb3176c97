# =============================================================================
# JWT identity tokens
# =============================================================================
#
# This module only turns bearer tokens into caller identities:
#   - Token creation (for tests and trusted issuers)
#   - Token validation
#
# Credential checks (passwords, OAuth) live with whoever issues tokens.
#
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging

from pydantic import BaseModel, Field
import jwt

from warden.config import get_settings
from warden.core.utils import coerce_identifier, generate_id, utc_now

logger = logging.getLogger(__name__)


# =============================================================================
# Models
# =============================================================================

class TokenPayload(BaseModel):
    """JWT token payload."""
    sub: str  # user id
    exp: datetime
    iat: datetime
    type: str  # "access"
    jti: str  # unique token ID
    roles: list[str] = Field(default_factory=list)

    @property
    def user_id(self) -> int:
        return int(self.sub)

    @property
    def is_admin(self) -> bool:
        return get_settings().admin_role in self.roles


# =============================================================================
# Token Creation
# =============================================================================

def create_access_token(
    user_id: int,
    roles: list[str] | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    now = utc_now()
    expire = now + (expires_in or timedelta(minutes=settings.jwt_access_token_expire_minutes))

    payload = {
        "sub": str(user_id),
        "exp": expire,
        "iat": now,
        "type": "access",
        "jti": generate_id("tok"),
        "roles": list(roles or []),
    }

    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_admin_token(user_id: int) -> str:
    """Access token carrying the admin role."""
    return create_access_token(user_id, roles=[get_settings().admin_role])


# =============================================================================
# Token Validation
# =============================================================================

class TokenError(Exception):
    """Base exception for token errors."""
    pass


class TokenExpiredError(TokenError):
    """Token has expired."""
    pass


class TokenInvalidError(TokenError):
    """Token is invalid or malformed."""
    pass


def decode_token(token: str, expected_type: str = "access") -> TokenPayload:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT string
        expected_type: Token type claim to require

    Returns:
        TokenPayload with validated claims

    Raises:
        TokenExpiredError: Token has expired
        TokenInvalidError: Token is invalid
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise TokenInvalidError(f"Expected {expected_type} token, got {payload.get('type')}")

    sub = str(payload.get("sub", ""))
    user_id = coerce_identifier(sub)
    if user_id is None:
        raise TokenInvalidError(f"Subject {sub!r} is not a user id")

    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        raise TokenInvalidError("Roles claim must be a list")

    return TokenPayload(
        sub=str(user_id),
        exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        iat=datetime.fromtimestamp(payload.get("iat", payload["exp"]), tz=timezone.utc),
        type=payload["type"],
        jti=payload.get("jti", ""),
        roles=[str(r) for r in roles],
    )
