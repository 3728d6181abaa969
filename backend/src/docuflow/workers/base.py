"""Tenant checks for background tasks.

Tasks receive org_id as a UUID string (JSON serializable) taken from the
authenticated user when the task is enqueued, never from request bodies.
Every multi-tenant task validates it before touching data.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from ..models.org import Org


def validate_org_id(db: Session, org_id: str) -> UUID:
    """Parse org_id and check the organization exists.

    Raises:
        ValueError: If org_id is not a UUID or the organization doesn't exist
    """
    try:
        org_uuid = UUID(str(org_id))
    except (ValueError, AttributeError, TypeError) as e:
        raise ValueError(f"Invalid org_id format '{org_id}': {str(e)}")

    if db.query(Org.id).filter(Org.id == org_uuid).first() is None:
        raise ValueError(f"Organization {org_id} does not exist")
    return org_uuid
