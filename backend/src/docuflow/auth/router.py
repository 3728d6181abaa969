"""Authentication endpoints: login and current profile."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ApiError, ErrorMessages
from ..api.responses import success_response
from ..database import get_db
from ..models.org import Org
from ..models.profile import Profile
from .dependencies import CurrentUser
from .jwt import create_access_token, get_jwt_expiry_minutes
from .password import verify_password
from .rate_limit import check_rate_limit
from .schemas import LoginRequest, LoginResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(
    credentials: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(check_rate_limit),
):
    """Authenticate a profile and return a JWT access token.

    The same generic message is returned for unknown organizations, unknown
    emails, wrong passwords and directory-only profiles.

    Raises:
        ApiError 401: Invalid credentials or disabled account
        ApiError 429: Rate limit exceeded
    """
    org = db.query(Org).filter(Org.slug == credentials.org_slug).first()
    if not org:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorMessages.INVALID_CREDENTIALS)

    email = credentials.email.lower()
    user = db.query(Profile).filter(Profile.org_id == org.id, Profile.email == email).first()

    if not user or not verify_password(credentials.password, user.password_hash):
        log_from_request(
            db, request, org.id, "login_failed", "auth",
            details={"email": email, "reason": "invalid_credentials"},
        )
        db.commit()
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorMessages.INVALID_CREDENTIALS)

    if user.status != "ACTIVE":
        log_from_request(
            db, request, org.id, "login_failed", "auth",
            user_id=user.id, details={"email": email, "reason": "account_disabled"},
        )
        db.commit()
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Account is disabled")

    user.last_login_at = datetime.now(timezone.utc)
    log_from_request(db, request, org.id, "login_success", "auth", user_id=user.id)
    db.commit()

    token = LoginResponse(
        access_token=create_access_token(
            user_id=user.id,
            org_id=user.org_id,
            role=user.role,
            email=user.email,
        ),
        expires_in=get_jwt_expiry_minutes() * 60,
    )
    return success_response(token.model_dump())


@router.get("/me")
async def get_me(current_user: CurrentUser):
    """Profile of the authenticated caller."""
    return success_response(current_user.to_dict())
