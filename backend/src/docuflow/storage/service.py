"""Storage config operations shared by the API and ingestion"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from ..models.storage_config import StorageConfig
from .factory import create_adapter
from .port import ConnectionCheck, ReconnectRequiredError, StorageError

logger = logging.getLogger(__name__)


def get_default_storage(db: Session, org_id: UUID) -> Optional[StorageConfig]:
    """The org's default active storage config, else its oldest active one."""
    return (
        db.query(StorageConfig)
        .filter(StorageConfig.org_id == org_id, StorageConfig.is_active.is_(True))
        .order_by(StorageConfig.is_default.desc(), StorageConfig.created_at.asc())
        .first()
    )


def clear_other_defaults(db: Session, config: StorageConfig) -> None:
    """Keep at most one default storage config per organization."""
    (
        db.query(StorageConfig)
        .filter(
            StorageConfig.org_id == config.org_id,
            StorageConfig.id != config.id,
            StorageConfig.is_default.is_(True),
        )
        .update({StorageConfig.is_default: False}, synchronize_session="fetch")
    )


def test_storage_connection(
    db: Session,
    config: StorageConfig,
    http_client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """Run the provider's connection checks.

    Returns:
        {"success", "results": {"config_id", "provider", "tests", "overall"}, "tested_at"}
    """
    try:
        adapter = create_adapter(config, db=db, http_client=http_client)
    except (ReconnectRequiredError, StorageError) as e:
        checks = [ConnectionCheck("configuration", "failed", error=str(e))]
    else:
        try:
            checks = adapter.test_connection()
        except ReconnectRequiredError as e:
            checks = [ConnectionCheck("authentication", "failed", error=str(e))]
        finally:
            adapter.close()

    overall = "passed" if checks and all(c.status != "failed" for c in checks) else "failed"
    logger.info(
        f"Storage connection test {overall} for '{config.name}'",
        extra={"org_id": str(config.org_id), "provider": config.provider, "storage_config_id": str(config.id)},
    )

    return {
        "success": overall == "passed",
        "results": {
            "config_id": str(config.id),
            "provider": config.provider,
            "tests": [check.to_dict() for check in checks],
            "overall": overall,
        },
        "tested_at": datetime.now(timezone.utc).isoformat(),
    }
