"""Pydantic schemas for organization settings.

Settings are free-form JSON stored in org.settings_json; only the known
sub-objects are validated. Unknown keys are kept as sent.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AutoApprovalSettings(BaseModel):
    """Automatic document approval thresholds."""

    model_config = ConfigDict(extra="allow")

    enabled: Optional[bool] = Field(None, strict=True)
    min_owner_match_confidence: Optional[float] = Field(None, ge=0.5, le=1.0, strict=True)
    min_authenticity_score: Optional[float] = Field(None, ge=0.5, le=1.0, strict=True)
    min_request_compliance_score: Optional[float] = Field(None, ge=0.5, le=1.0, strict=True)
    require_expiry_check: Optional[bool] = Field(None, strict=True)
    allow_expired_documents: Optional[bool] = Field(None, strict=True)


class OrgSettingsUpdate(BaseModel):
    """Partial settings update, merged into the stored settings."""

    model_config = ConfigDict(extra="allow")

    auto_approval: Optional[AutoApprovalSettings] = None
