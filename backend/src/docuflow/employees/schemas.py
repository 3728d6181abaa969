"""Pydantic schemas for the employee directory and imports"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..auth.roles import VALID_ROLES
from .validation import normalize_phone


class EmployeeBase(BaseModel):
    full_name: Optional[str] = Field(None, max_length=200)
    job_title: Optional[str] = Field(None, max_length=200)
    department: Optional[str] = Field(None, max_length=200)
    team: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=200)
    skills: Optional[List[str]] = None
    bio: Optional[str] = Field(None, max_length=5000)
    avatar_url: Optional[str] = Field(None, max_length=1000)

    @field_validator("phone")
    @classmethod
    def clean_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v) if v else None

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        return [skill.strip() for skill in v if skill and skill.strip()]


class EmployeeCreate(EmployeeBase):
    """Schema for adding an employee to the directory"""
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    role: str = "member"

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in VALID_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(sorted(VALID_ROLES))}")
        return v

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name cannot be empty")
        return v.strip()


class EmployeeUpdate(EmployeeBase):
    """Schema for updating an employee (all fields optional)"""
    role: Optional[str] = None
    status: Optional[str] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().lower()
        if v not in VALID_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {', '.join(sorted(VALID_ROLES))}")
        return v

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("ACTIVE", "DISABLED"):
            raise ValueError("Status must be ACTIVE or DISABLED")
        return v


class ImportExecuteRequest(BaseModel):
    """Rows keyed by field name, as returned in the preview's validation rows"""
    rows: List[Dict[str, Any]]
    field_mapping: Dict[str, Optional[str]]
    create_new_users: bool = False
