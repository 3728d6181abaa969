"""DocumentRequest and status history SQLAlchemy models"""

import uuid

from sqlalchemy import Column, Text, Integer, ForeignKey, CheckConstraint, Index, DateTime, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow, isoformat


REQUEST_STATUS_VALUES = "('pending', 'sent', 'received', 'missing_files', 'completed', 'expired', 'verifying')"


class DocumentRequest(Base):
    """Outbound ask for one recipient to supply documents by email."""
    __tablename__ = "document_request"
    __table_args__ = (
        CheckConstraint(f"status IN {REQUEST_STATUS_VALUES}", name="ck_document_request_status"),
        Index("ix_document_request_org_status", "org_id", "status"),
        Index("ix_document_request_recipient", "recipient_email"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    email_account_id = Column(
        Uuid(as_uuid=True), ForeignKey("email_account.id", ondelete="SET NULL"), nullable=True
    )
    recipient_email = Column(Text, nullable=False)
    subject = Column(Text, nullable=False)
    message_body = Column(Text, nullable=True)
    request_type = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    due_date = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    document_count = Column(Integer, nullable=False, default=0)
    expected_document_count = Column(Integer, nullable=True)
    last_status_change = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    history = relationship(
        "DocumentRequestStatusHistory",
        back_populates="document_request",
        cascade="all, delete-orphan",
        order_by="DocumentRequestStatusHistory.created_at",
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "email_account_id": str(self.email_account_id) if self.email_account_id else None,
            "recipient_email": self.recipient_email,
            "subject": self.subject,
            "message_body": self.message_body,
            "request_type": self.request_type,
            "status": self.status,
            "due_date": isoformat(self.due_date),
            "sent_at": isoformat(self.sent_at),
            "completed_at": isoformat(self.completed_at),
            "document_count": self.document_count,
            "expected_document_count": self.expected_document_count,
            "last_status_change": isoformat(self.last_status_change),
            "created_by": str(self.created_by) if self.created_by else None,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class DocumentRequestStatusHistory(Base):
    """Append-only record of every status change on a document request."""
    __tablename__ = "document_request_status_history"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    document_request_id = Column(
        Uuid(as_uuid=True), ForeignKey("document_request.id", ondelete="CASCADE"), nullable=False
    )
    old_status = Column(Text, nullable=True)
    new_status = Column(Text, nullable=False)
    changed_by = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="SET NULL"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    document_request = relationship("DocumentRequest", back_populates="history")

    def to_dict(self):
        return {
            "old_status": self.old_status,
            "new_status": self.new_status,
            "changed_by": str(self.changed_by) if self.changed_by else None,
            "reason": self.reason,
            "created_at": isoformat(self.created_at),
        }
