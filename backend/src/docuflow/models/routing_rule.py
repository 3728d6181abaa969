"""RoutingRule SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Integer, Boolean, ForeignKey, Index, DateTime, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow, isoformat


class RoutingRule(Base):
    """Condition/action pair deciding where an inbound document is stored.

    conditions: {"sender_pattern", "subject_pattern", "file_types", "requires_employee"}
    actions: {"storage_id", "folder_path", "metadata"}
    """
    __tablename__ = "routing_rule"
    __table_args__ = (
        Index("ix_routing_rule_org_priority", "org_id", "priority"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    name = Column(Text, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    conditions = Column(PortableJSONB, nullable=False, default=dict)
    actions = Column(PortableJSONB, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    org = relationship("Org", back_populates="routing_rules")

    def to_dict(self):
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "name": self.name,
            "priority": self.priority,
            "conditions": self.conditions or {},
            "actions": self.actions or {},
            "is_active": self.is_active,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
