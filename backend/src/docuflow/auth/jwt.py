"""JWT token generation and validation

Access tokens are HS256-signed and carry:

- sub: profile ID (UUID string)
- org_id: organization (tenant) ID; every API call is scoped by it
- role: "owner" | "admin" | "member"
- email: profile email
- iat / exp: issue and expiry timestamps (JWT_EXPIRY_MINUTES, default 60)

The secret is read from the JWT_SECRET environment variable on every call
so tests and deployments can rotate it without a restart of the settings cache.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from uuid import UUID

import jwt

ALGORITHM = "HS256"


def _get_jwt_secret() -> str:
    """Raises ValueError if JWT_SECRET is not set."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def get_jwt_expiry_minutes() -> int:
    try:
        return int(os.getenv("JWT_EXPIRY_MINUTES", "60"))
    except ValueError:
        return 60


def create_access_token(user_id: UUID, org_id: UUID, role: str, email: str) -> str:
    """Create a signed access token for an authenticated profile.

    Args:
        user_id: Profile UUID
        org_id: Organization UUID
        role: Profile role (owner, admin, member)
        email: Profile email address

    Returns:
        str: Signed JWT token
    """
    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=get_jwt_expiry_minutes())

    payload = {
        "sub": str(user_id),
        "org_id": str(org_id),
        "role": role,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(expiration.timestamp()),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    return jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])
