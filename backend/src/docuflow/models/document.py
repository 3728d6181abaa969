"""Document SQLAlchemy model

A Document is one attachment that was received by email, routed and
written to a storage provider.
"""

import uuid

from sqlalchemy import Column, Text, BigInteger, ForeignKey, CheckConstraint, Index, DateTime, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat


class Document(Base):
    __tablename__ = "document"
    __table_args__ = (
        CheckConstraint(
            "status IN ('received', 'processed', 'verified', 'rejected')",
            name="ck_document_status",
        ),
        Index("ix_document_org_id", "org_id"),
        Index("ix_document_request", "document_request_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    document_request_id = Column(
        Uuid(as_uuid=True), ForeignKey("document_request.id", ondelete="SET NULL"), nullable=True
    )
    storage_config_id = Column(
        Uuid(as_uuid=True), ForeignKey("storage_config.id", ondelete="SET NULL"), nullable=True
    )
    routing_rule_id = Column(
        Uuid(as_uuid=True), ForeignKey("routing_rule.id", ondelete="SET NULL"), nullable=True
    )
    email_account_id = Column(
        Uuid(as_uuid=True), ForeignKey("email_account.id", ondelete="SET NULL"), nullable=True
    )
    sender_email = Column(Text, nullable=False)
    original_filename = Column(Text, nullable=False)
    stored_filename = Column(Text, nullable=True)
    storage_path = Column(Text, nullable=False)
    storage_provider = Column(Text, nullable=False)
    file_type = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=True)
    mime_type = Column(Text, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=False, default=dict)
    status = Column(Text, nullable=False, default="received")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        """Convert document to dictionary representation"""
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "document_request_id": str(self.document_request_id) if self.document_request_id else None,
            "storage_config_id": str(self.storage_config_id) if self.storage_config_id else None,
            "routing_rule_id": str(self.routing_rule_id) if self.routing_rule_id else None,
            "sender_email": self.sender_email,
            "original_filename": self.original_filename,
            "stored_filename": self.stored_filename,
            "storage_path": self.storage_path,
            "storage_provider": self.storage_provider,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "metadata": self.metadata_json or {},
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
