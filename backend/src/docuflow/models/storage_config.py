"""StorageConfig SQLAlchemy model"""

import enum
import uuid

from sqlalchemy import Column, Text, Boolean, ForeignKey, CheckConstraint, Index, DateTime, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, isoformat


class StorageProvider(str, enum.Enum):
    """Supported storage destinations"""
    GOOGLE_DRIVE = "google_drive"
    ONEDRIVE = "onedrive"
    SHAREPOINT = "sharepoint"
    AZURE_BLOB = "azure_blob"
    OBJECT_STORE = "object_store"


OAUTH_PROVIDERS = {StorageProvider.GOOGLE_DRIVE, StorageProvider.ONEDRIVE, StorageProvider.SHAREPOINT}


class StorageConfig(Base):
    """A tenant's connection to a file storage provider.

    `config` holds non-secret settings (root folder, bucket, container,
    SharePoint site/drive). Secrets live in `encrypted_credentials` and are
    never serialized by to_dict().
    """
    __tablename__ = "storage_config"
    __table_args__ = (
        CheckConstraint(
            "provider IN ('google_drive', 'onedrive', 'sharepoint', 'azure_blob', 'object_store')",
            name="ck_storage_config_provider",
        ),
        Index("ix_storage_config_org_default", "org_id", "is_default"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    provider = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    config = Column(PortableJSONB, nullable=False, default=dict)
    encrypted_credentials = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    org = relationship("Org", back_populates="storage_configs")

    def to_dict(self):
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "provider": self.provider,
            "name": self.name,
            "config": self.config or {},
            "has_credentials": self.encrypted_credentials is not None,
            "expires_at": isoformat(self.expires_at),
            "is_default": self.is_default,
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
