"""EmailAccount SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Boolean, ForeignKey, CheckConstraint, UniqueConstraint, DateTime, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat


class EmailAccount(Base):
    """Mailbox connected to an organization (Gmail or Outlook).

    Tokens are stored as AES-GCM envelopes (see encryption.config_encryption)
    and are refreshed by the integrations.refresh_tokens task.
    """
    __tablename__ = "email_account"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    provider = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    encrypted_access_token = Column(Text, nullable=False)
    encrypted_refresh_token = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    last_sync_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sync_settings = Column(PortableJSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("provider IN ('gmail', 'outlook')", name="ck_email_account_provider"),
        UniqueConstraint("org_id", "email", name="uq_email_account_org_email"),
    )

    def to_dict(self):
        return {
            "id": str(self.id),
            "provider": self.provider,
            "email": self.email,
            "expires_at": isoformat(self.expires_at),
            "last_sync_at": isoformat(self.last_sync_at),
            "is_active": self.is_active,
        }
