"""Organization settings API endpoints"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ErrorMessages, not_found
from ..api.responses import success_response
from ..auth.dependencies import AdminUser
from ..database import get_db
from ..models.org import Org
from .schemas import OrgSettingsUpdate

router = APIRouter(prefix="/organizations", tags=["organizations"])


def deep_merge(base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    """Merge update into a copy of base; nested dicts merge, other values replace.

    Example:
        deep_merge({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"c": 99}})
        # {"a": 1, "b": {"c": 99, "d": 3}}
    """
    result = dict(base)
    for key, value in update.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_org(db: Session, org_id) -> Org:
    org = db.query(Org).filter(Org.id == org_id).first()
    if not org:
        raise not_found(ErrorMessages.ORGANIZATION_NOT_FOUND)
    return org


@router.get("/settings")
async def get_organization_settings(current_user: AdminUser, db: Session = Depends(get_db)):
    """Current organization settings (admin/owner only)."""
    org = _get_org(db, current_user.org_id)
    return success_response({"settings": org.settings_json or {}})


@router.put("/settings")
async def update_organization_settings(
    settings_update: OrgSettingsUpdate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Merge the body into the organization settings (admin/owner only).

    Only provided keys change; nested objects such as auto_approval are
    merged key by key.

    Raises:
        422: If auto_approval flags are not booleans or a min_* score is
            outside [0.5, 1.0]
    """
    org = _get_org(db, current_user.org_id)
    update = settings_update.model_dump(exclude_unset=True)

    org.settings_json = deep_merge(org.settings_json or {}, update)

    log_from_request(
        db, request, current_user.org_id, "update", "organization_settings",
        user_id=current_user.id, resource_id=org.id,
        details={"settings": update},
    )
    db.commit()
    db.refresh(org)

    return success_response({"settings": org.settings_json}, message="Settings updated successfully")
