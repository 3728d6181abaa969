"""Pydantic schemas for routing rules"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from .engine import validate_pattern


class RuleConditions(BaseModel):
    """Conditions that must all hold for a rule to match. Unset means 'any'."""
    sender_pattern: Optional[str] = Field(None, max_length=500)
    subject_pattern: Optional[str] = Field(None, max_length=500)
    file_types: Optional[List[str]] = None
    requires_employee: Optional[bool] = None

    @field_validator("sender_pattern", "subject_pattern")
    @classmethod
    def validate_regex(cls, v: Optional[str]) -> Optional[str]:
        """Reject patterns that do not compile"""
        if v is None or not v.strip():
            return None
        error = validate_pattern(v)
        if error:
            raise ValueError(error)
        return v

    @field_validator("file_types")
    @classmethod
    def normalize_file_types(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        cleaned = [ext.strip().lower().lstrip(".") for ext in v if ext and ext.strip()]
        return cleaned or None


class RuleActions(BaseModel):
    storage_id: Optional[UUID] = None
    folder_path: Optional[str] = Field(None, max_length=1000)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class RoutingRuleCreate(BaseModel):
    """Schema for creating a routing rule"""
    name: str = Field(..., min_length=1, max_length=200)
    priority: int = Field(0, ge=0, le=10000)
    conditions: RuleConditions = Field(default_factory=RuleConditions)
    actions: RuleActions = Field(default_factory=RuleActions)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Rule name cannot be empty")
        return v.strip()


class RoutingRuleUpdate(BaseModel):
    """Schema for updating a routing rule (all fields optional)"""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    priority: Optional[int] = Field(None, ge=0, le=10000)
    conditions: Optional[RuleConditions] = None
    actions: Optional[RuleActions] = None
    is_active: Optional[bool] = None


class RoutingTestRequest(BaseModel):
    """Sample message metadata to dry-run the organization's rules against"""
    sender_email: EmailStr
    sender_name: Optional[str] = None
    subject: str = ""
    attachment_filenames: List[str] = Field(default_factory=list)
    employee_name: Optional[str] = None
    employee_email: Optional[EmailStr] = None
    received_at: Optional[datetime] = None
