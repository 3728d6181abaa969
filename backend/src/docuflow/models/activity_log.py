"""ActivityLog SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, ForeignKey, Index, DateTime, Uuid

from .base import Base, PortableJSONB, utcnow, isoformat


class ActivityLog(Base):
    """Append-only audit trail of actions performed inside an organization."""
    __tablename__ = "activity_log"
    __table_args__ = (
        Index("ix_activity_log_org_id", "org_id"),
        Index("ix_activity_log_org_id_created_at", "org_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("profile.id", ondelete="SET NULL"), nullable=True)
    action = Column(Text, nullable=False)
    resource_type = Column(Text, nullable=False)
    resource_id = Column(Uuid(as_uuid=True), nullable=True)
    details = Column(PortableJSONB, nullable=True)
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        """Convert activity entry to dictionary representation"""
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "user_id": str(self.user_id) if self.user_id else None,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": str(self.resource_id) if self.resource_id else None,
            "details": self.details,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": isoformat(self.created_at),
        }
