"""Storage configuration API endpoints"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ErrorMessages, bad_request
from ..api.responses import success_response
from ..auth.dependencies import AdminUser, CurrentUser
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.storage_config import StorageConfig, StorageProvider
from .credentials import get_credentials, set_credentials
from .schemas import StorageConfigCreate, StorageConfigUpdate, check_provider_settings
from .service import clear_other_defaults, get_default_storage, test_storage_connection

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("")
async def list_storage_configs(current_user: CurrentUser, db: Session = Depends(get_db)):
    configs = (
        TenantQuery.scoped_query(db, StorageConfig, current_user.org_id)
        .order_by(StorageConfig.is_default.desc(), StorageConfig.created_at.asc())
        .all()
    )
    return success_response([config.to_dict() for config in configs])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_storage_config(
    config_data: StorageConfigCreate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Connect a storage destination (admin/owner only).

    The organization's first active config becomes the default.
    """
    is_first = get_default_storage(db, current_user.org_id) is None

    config = StorageConfig(
        org_id=current_user.org_id,
        provider=config_data.provider.value,
        name=config_data.name,
        config=config_data.config,
        is_default=config_data.is_default or (is_first and config_data.is_active),
        is_active=config_data.is_active,
    )
    set_credentials(config, config_data.credentials)
    db.add(config)
    db.flush()

    if config.is_default:
        clear_other_defaults(db, config)

    log_from_request(
        db, request, current_user.org_id, "create", "storage_config",
        user_id=current_user.id, resource_id=config.id,
        details={"name": config.name, "provider": config.provider},
    )
    db.commit()
    db.refresh(config)

    return success_response(config.to_dict(), message="Storage configuration created")


@router.get("/{config_id}")
async def get_storage_config(config_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    config = TenantQuery.get_or_404(db, StorageConfig, config_id, current_user.org_id, ErrorMessages.STORAGE_NOT_FOUND)
    return success_response(config.to_dict())


@router.put("/{config_id}")
async def update_storage_config(
    config_id: UUID,
    update_data: StorageConfigUpdate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Update a storage config (admin/owner only).

    Raises:
        ApiError 400: If the resulting settings are incomplete for the provider
        ApiError 404: If the config is not in this organization
    """
    config = TenantQuery.get_or_404(db, StorageConfig, config_id, current_user.org_id, ErrorMessages.STORAGE_NOT_FOUND)

    changes = update_data.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request(ErrorMessages.INVALID_INPUT)

    new_config = update_data.config if update_data.config is not None else (config.config or {})
    new_credentials = update_data.credentials if update_data.credentials is not None else get_credentials(config)
    try:
        check_provider_settings(StorageProvider(config.provider), new_config, new_credentials)
    except ValueError as e:
        raise bad_request(str(e))

    if update_data.name is not None:
        config.name = update_data.name.strip()
    if update_data.config is not None:
        config.config = update_data.config
    if update_data.credentials is not None:
        set_credentials(config, update_data.credentials)
    if update_data.is_active is not None:
        config.is_active = update_data.is_active
    if update_data.is_default is not None:
        config.is_default = update_data.is_default
        if config.is_default:
            clear_other_defaults(db, config)

    log_from_request(
        db, request, current_user.org_id, "update", "storage_config",
        user_id=current_user.id, resource_id=config.id,
        details={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(config)

    return success_response(config.to_dict(), message="Storage configuration updated")


@router.delete("/{config_id}")
async def delete_storage_config(
    config_id: UUID,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """Delete a storage config; if it was the default, the oldest active one takes over."""
    config = TenantQuery.get_or_404(db, StorageConfig, config_id, current_user.org_id, ErrorMessages.STORAGE_NOT_FOUND)
    was_default = config.is_default

    log_from_request(
        db, request, current_user.org_id, "delete", "storage_config",
        user_id=current_user.id, resource_id=config.id, details={"name": config.name},
    )
    db.delete(config)
    db.flush()

    if was_default:
        successor = get_default_storage(db, current_user.org_id)
        if successor is not None:
            successor.is_default = True

    db.commit()
    return success_response({"id": str(config_id)}, message="Storage configuration deleted")


@router.post("/{config_id}/test-connection")
async def test_connection(
    config_id: UUID,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Check that the destination is reachable with the stored credentials.

    Returns {success, results: {config_id, provider, tests, overall}, tested_at}.
    A failed check is reported in the body, not as an HTTP error.
    """
    config = TenantQuery.get_or_404(db, StorageConfig, config_id, current_user.org_id, ErrorMessages.STORAGE_NOT_FOUND)

    result = test_storage_connection(db, config)
    if not result["success"]:
        result["error"] = ErrorMessages.STORAGE_CONNECTION_FAILED

    log_from_request(
        db, request, current_user.org_id, "test_connection", "storage_config",
        user_id=current_user.id, resource_id=config.id,
        details={"overall": result["results"]["overall"]},
    )
    db.commit()

    return result
