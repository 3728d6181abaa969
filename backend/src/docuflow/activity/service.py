"""Activity logging for the organization audit trail.

Entries are append-only. Callers add the entry to the current session and
commit it together with the change it describes.

Actions in use: create, update, delete, import, export, route, status_change,
login_success, login_failed, create_defaults, test_connection.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.orm import Session

from ..api.client_info import get_client_ip, get_user_agent
from ..models.activity_log import ActivityLog


def log_activity(
    db: Session,
    org_id: UUID,
    action: str,
    resource_type: str,
    user_id: Optional[UUID] = None,
    resource_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> ActivityLog:
    """Create an activity log entry.

    Args:
        db: Database session
        org_id: Organization ID
        action: Event action (e.g. "create", "import")
        resource_type: Kind of resource affected (e.g. "employees", "routing_rule")
        user_id: Profile that performed the action (None for system events)
        resource_id: ID of affected resource
        details: Additional JSON context
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        ActivityLog: The flushed (not committed) entry

    Example:
        log_activity(
            db, org_id, "create", "routing_rule",
            user_id=current_user.id, resource_id=rule.id,
            details={"name": rule.name},
        )
    """
    entry = ActivityLog(
        org_id=org_id,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(entry)
    db.flush()
    return entry


def log_from_request(
    db: Session,
    request: Request,
    org_id: UUID,
    action: str,
    resource_type: str,
    user_id: Optional[UUID] = None,
    resource_id: Optional[UUID] = None,
    details: Optional[Dict[str, Any]] = None,
) -> ActivityLog:
    """log_activity with IP and User-Agent taken from the request."""
    return log_activity(
        db=db,
        org_id=org_id,
        action=action,
        resource_type=resource_type,
        user_id=user_id,
        resource_id=resource_id,
        details=details,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
