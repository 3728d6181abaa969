"""Routing rule management API endpoints"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ApiError, ErrorMessages, bad_request
from ..api.responses import success_response
from ..auth.dependencies import AdminUser, CurrentUser
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.profile import Profile
from ..models.routing_rule import RoutingRule
from ..models.storage_config import StorageConfig
from ..storage.service import get_default_storage
from .defaults import DEFAULT_RULES
from .engine import RoutingContext, resolve_route
from .schemas import RoutingRuleCreate, RoutingRuleUpdate, RoutingTestRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/routing-rules", tags=["routing"])


def _ensure_storage_in_org(db: Session, storage_id: Optional[UUID], org_id: UUID) -> None:
    if storage_id is not None:
        TenantQuery.get_or_404(db, StorageConfig, storage_id, org_id, ErrorMessages.STORAGE_NOT_FOUND)


@router.get("")
async def list_rules(current_user: CurrentUser, db: Session = Depends(get_db)):
    """List the organization's rules in evaluation order."""
    rules = (
        TenantQuery.scoped_query(db, RoutingRule, current_user.org_id)
        .order_by(RoutingRule.priority.desc(), RoutingRule.created_at.asc())
        .all()
    )
    return success_response([rule.to_dict() for rule in rules])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rule(
    rule_data: RoutingRuleCreate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Create a routing rule (admin/owner only).

    Raises:
        ApiError 404: If actions.storage_id is not a storage config of this organization
        422: If a pattern is not a valid regular expression
    """
    _ensure_storage_in_org(db, rule_data.actions.storage_id, current_user.org_id)

    rule = RoutingRule(
        org_id=current_user.org_id,
        name=rule_data.name,
        priority=rule_data.priority,
        conditions=rule_data.conditions.model_dump(exclude_none=True),
        actions=rule_data.actions.model_dump(mode="json", exclude_none=True),
        is_active=rule_data.is_active,
    )
    db.add(rule)
    db.flush()

    log_from_request(
        db, request, current_user.org_id, "create", "routing_rule",
        user_id=current_user.id, resource_id=rule.id, details={"name": rule.name},
    )
    db.commit()
    db.refresh(rule)

    return success_response(rule.to_dict(), message="Routing rule created")


@router.post("/defaults", status_code=status.HTTP_201_CREATED)
async def create_default_rules(request: Request, current_user: AdminUser, db: Session = Depends(get_db)):
    """
    Seed the starter rule set, pointing at the default storage config.

    Raises:
        ApiError 400: If the organization already has rules or has no active storage
    """
    org_id = current_user.org_id
    if TenantQuery.scoped_query(db, RoutingRule, org_id).count() > 0:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            ErrorMessages.RULES_ALREADY_EXIST,
            code="RULES_ALREADY_EXIST",
        )

    storage = get_default_storage(db, org_id)
    if storage is None:
        raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorMessages.NO_ACTIVE_STORAGE, code="NO_ACTIVE_STORAGE")

    rules = []
    for definition in DEFAULT_RULES:
        rule = RoutingRule(
            org_id=org_id,
            name=definition["name"],
            priority=definition["priority"],
            conditions=dict(definition["conditions"]),
            actions={**definition["actions"], "storage_id": str(storage.id)},
            is_active=True,
        )
        db.add(rule)
        rules.append(rule)
    db.flush()

    log_from_request(
        db, request, org_id, "create_defaults", "routing_rule",
        user_id=current_user.id,
        details={"count": len(rules), "storage_id": str(storage.id)},
    )
    db.commit()

    logger.info(f"Created {len(rules)} default routing rules", extra={"org_id": str(org_id)})
    return success_response([rule.to_dict() for rule in rules], message=f"Created {len(rules)} default rules")


@router.post("/test")
async def test_rules(test_data: RoutingTestRequest, current_user: CurrentUser, db: Session = Depends(get_db)):
    """Dry-run the active rules against sample message metadata.

    When no employee is given, the sender is looked up in the directory the
    same way inbound ingestion does.
    """
    employee_name = test_data.employee_name
    employee_email = test_data.employee_email
    if not employee_name and not employee_email:
        employee = (
            TenantQuery.scoped_query(db, Profile, current_user.org_id)
            .filter(Profile.email == test_data.sender_email.lower())
            .first()
        )
        if employee:
            employee_name, employee_email = employee.full_name, employee.email

    context = RoutingContext(
        sender_email=test_data.sender_email.lower(),
        sender_name=test_data.sender_name,
        subject=test_data.subject,
        attachment_filenames=test_data.attachment_filenames,
        employee_name=employee_name,
        employee_email=employee_email,
        received_at=test_data.received_at,
    )
    rules = (
        TenantQuery.scoped_query(db, RoutingRule, current_user.org_id)
        .order_by(RoutingRule.created_at.asc(), RoutingRule.id.asc())
        .all()
    )
    decision = resolve_route(rules, context)

    return success_response({
        "matched": decision.rule is not None,
        "rule": decision.rule.to_dict() if decision.rule is not None else None,
        "folder_path": decision.folder_path,
        "storage_id": decision.storage_id,
    })


@router.get("/{rule_id}")
async def get_rule(rule_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    rule = TenantQuery.get_or_404(db, RoutingRule, rule_id, current_user.org_id, ErrorMessages.RULE_NOT_FOUND)
    return success_response(rule.to_dict())


@router.put("/{rule_id}")
async def update_rule(
    rule_id: UUID,
    update_data: RoutingRuleUpdate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Update a routing rule (admin/owner only).

    Raises:
        ApiError 404: Rule or referenced storage config not found in this organization
    """
    rule = TenantQuery.get_or_404(db, RoutingRule, rule_id, current_user.org_id, ErrorMessages.RULE_NOT_FOUND)

    changes = update_data.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request(ErrorMessages.INVALID_INPUT)

    if update_data.name is not None:
        if not update_data.name.strip():
            raise bad_request("Rule name cannot be empty")
        rule.name = update_data.name.strip()
    if update_data.priority is not None:
        rule.priority = update_data.priority
    if update_data.conditions is not None:
        rule.conditions = update_data.conditions.model_dump(exclude_none=True)
    if update_data.actions is not None:
        _ensure_storage_in_org(db, update_data.actions.storage_id, current_user.org_id)
        rule.actions = update_data.actions.model_dump(mode="json", exclude_none=True)
    if update_data.is_active is not None:
        rule.is_active = update_data.is_active

    log_from_request(
        db, request, current_user.org_id, "update", "routing_rule",
        user_id=current_user.id, resource_id=rule.id, details={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(rule)

    return success_response(rule.to_dict(), message="Routing rule updated")


@router.delete("/{rule_id}")
async def delete_rule(rule_id: UUID, request: Request, current_user: AdminUser, db: Session = Depends(get_db)):
    rule = TenantQuery.get_or_404(db, RoutingRule, rule_id, current_user.org_id, ErrorMessages.RULE_NOT_FOUND)

    log_from_request(
        db, request, current_user.org_id, "delete", "routing_rule",
        user_id=current_user.id, resource_id=rule.id, details={"name": rule.name},
    )
    db.delete(rule)
    db.commit()

    return success_response({"id": str(rule_id)}, message="Routing rule deleted")
