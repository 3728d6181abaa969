"""Tenant scoping helpers for routers and services.

Every tenant-owned table carries org_id. Lookups go through TenantQuery so
that a record belonging to another organization is indistinguishable from
a missing one (404, never 403).
"""

from uuid import UUID

from fastapi import status
from sqlalchemy.orm import Session

from .api.errors import ApiError


class TenantQuery:
    """Utility for building org-scoped queries.

    Example:
        rule = TenantQuery.get_or_404(db, RoutingRule, rule_id, org_id, "Routing rule not found.")
    """

    @staticmethod
    def scoped_query(session: Session, model, org_id: UUID):
        if not hasattr(model, "org_id"):
            raise AttributeError(f"Model {model.__name__} does not have org_id column")

        return session.query(model).filter(model.org_id == org_id)

    @staticmethod
    def get_or_404(session: Session, model, record_id: UUID, org_id: UUID, message: str | None = None):
        """Get a record by ID within org_id, or raise 404.

        Raises:
            ApiError 404: If record not found or belongs to another org
        """
        record = TenantQuery.scoped_query(session, model, org_id).filter(model.id == record_id).first()
        if not record:
            raise ApiError(status.HTTP_404_NOT_FOUND, message or f"{model.__name__} not found")
        return record
