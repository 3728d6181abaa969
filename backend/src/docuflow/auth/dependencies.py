"""FastAPI dependencies for authentication and authorization.

Usage:
    @router.get("/protected")
    def protected_endpoint(user: Profile = Depends(get_current_user)):
        ...

    @router.post("/admin-only")
    def admin_endpoint(user: Profile = Depends(require_role(ProfileRole.ADMIN))):
        ...
"""

from typing import Annotated, Callable, Optional
from uuid import UUID

import jwt
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..api.errors import ApiError, ErrorMessages
from ..database import get_db
from ..models.profile import Profile
from .jwt import decode_token
from .roles import ProfileRole, has_permission


# auto_error=False so a missing header is reported as 401 in our envelope
security = HTTPBearer(auto_error=False)


def _unauthorized(message: str = ErrorMessages.UNAUTHORIZED, code: Optional[str] = None) -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        message,
        code=code,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Profile:
    """Validate the bearer token and return the authenticated profile.

    Raises:
        ApiError 401: Token missing, invalid or expired, or profile not found
        ApiError 403: Profile is DISABLED
    """
    if credentials is None:
        raise _unauthorized()

    try:
        payload = decode_token(credentials.credentials)
        user_id = UUID(payload.get("sub", ""))
    except jwt.ExpiredSignatureError:
        raise _unauthorized(ErrorMessages.SESSION_EXPIRED, code="SESSION_EXPIRED")
    except (jwt.InvalidTokenError, ValueError):
        raise _unauthorized()

    user = db.query(Profile).filter(Profile.id == user_id).first()
    if not user or user.password_hash is None:
        raise _unauthorized()

    if user.status != "ACTIVE":
        raise ApiError(status.HTTP_403_FORBIDDEN, "User account is disabled")

    return user


def require_role(required_role: ProfileRole) -> Callable:
    """Create a dependency enforcing a minimum role.

    Role hierarchy: owner > admin > member.
    """

    def role_dependency(current_user: Profile = Depends(get_current_user)) -> Profile:
        try:
            user_role = ProfileRole(current_user.role)
        except ValueError:
            raise ApiError(status.HTTP_403_FORBIDDEN, ErrorMessages.FORBIDDEN)

        if not has_permission(user_role, required_role):
            raise ApiError(
                status.HTTP_403_FORBIDDEN,
                ErrorMessages.ADMIN_REQUIRED if required_role != ProfileRole.MEMBER else ErrorMessages.FORBIDDEN,
            )
        return current_user

    return role_dependency


CurrentUser = Annotated[Profile, Depends(get_current_user)]
AdminUser = Annotated[Profile, Depends(require_role(ProfileRole.ADMIN))]
OwnerUser = Annotated[Profile, Depends(require_role(ProfileRole.OWNER))]
