"""Activity log API endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..api.responses import success_response
from ..auth.dependencies import AdminUser
from ..database import get_db
from ..models.activity_log import ActivityLog

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("")
async def list_activity(
    current_user: AdminUser,
    resource_type: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List the organization's activity, newest first (admin/owner only)."""
    query = db.query(ActivityLog).filter(ActivityLog.org_id == current_user.org_id)
    if resource_type:
        query = query.filter(ActivityLog.resource_type == resource_type)
    if action:
        query = query.filter(ActivityLog.action == action)

    total = query.count()
    entries = query.order_by(ActivityLog.created_at.desc()).offset(offset).limit(limit).all()

    return success_response({
        "items": [entry.to_dict() for entry in entries],
        "total": total,
    })
