"""Pydantic schemas for document requests"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .request_types import normalize_request_type
from .status import RequestStatus


class DocumentRequestCreate(BaseModel):
    """Schema for requesting documents from one or more recipients.

    One request is created per recipient.
    """
    recipient_email: Optional[EmailStr] = None
    recipients: Optional[List[EmailStr]] = None
    subject: str = Field(..., min_length=1, max_length=500)
    message_body: Optional[str] = Field(None, max_length=20000)
    request_type: Optional[str] = Field(None, max_length=100)
    due_date: Optional[datetime] = None
    expected_document_count: Optional[int] = Field(None, ge=1, le=100)
    email_account_id: Optional[UUID] = None

    @field_validator("request_type")
    @classmethod
    def normalize_type(cls, v: Optional[str]) -> Optional[str]:
        return normalize_request_type(v)

    @model_validator(mode="after")
    def require_recipient(self):
        if not self.recipient_email and not self.recipients:
            raise ValueError("recipient_email or recipients is required")
        return self

    def all_recipients(self) -> List[str]:
        """Lowercased, de-duplicated recipients in input order."""
        emails = [self.recipient_email] if self.recipient_email else []
        emails += list(self.recipients or [])
        seen = []
        for email in emails:
            email = email.lower()
            if email not in seen:
                seen.append(email)
        return seen


class DocumentRequestUpdate(BaseModel):
    """Schema for updating a request; status changes follow the state machine"""
    subject: Optional[str] = Field(None, min_length=1, max_length=500)
    message_body: Optional[str] = Field(None, max_length=20000)
    request_type: Optional[str] = Field(None, max_length=100)
    due_date: Optional[datetime] = None
    expected_document_count: Optional[int] = Field(None, ge=1, le=100)
    status: Optional[RequestStatus] = None
    reason: Optional[str] = Field(None, max_length=1000)

    @field_validator("request_type")
    @classmethod
    def normalize_type(cls, v: Optional[str]) -> Optional[str]:
        return normalize_request_type(v)
