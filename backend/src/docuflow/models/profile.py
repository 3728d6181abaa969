"""Profile SQLAlchemy model (employees and login users)"""

import re
import uuid

from sqlalchemy import Column, Text, ForeignKey, CheckConstraint, UniqueConstraint, Index, DateTime, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, PortableJSONB, utcnow, isoformat


class Profile(Base):
    """Profile model for every person in an organization's directory.

    A profile with a password_hash can log in; directory-only employees
    (imported without an account) have password_hash NULL. The role
    decides what a logged-in profile may do inside its organization.
    """
    __tablename__ = "profile"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid(as_uuid=True), ForeignKey("org.id", ondelete="CASCADE"), nullable=False)
    email = Column(Text, nullable=False)
    full_name = Column(Text, nullable=True)
    role = Column(Text, nullable=False, default="member")
    job_title = Column(Text, nullable=True)
    department = Column(Text, nullable=True)
    team = Column(Text, nullable=True)
    phone = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    skills = Column(PortableJSONB, nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(Text, nullable=True)
    password_hash = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="ACTIVE")
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    org = relationship("Org", back_populates="profiles")

    __table_args__ = (
        CheckConstraint(
            "role IN ('owner', 'admin', 'member')",
            name='ck_profile_role'
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_profile_status'
        ),
        UniqueConstraint('org_id', 'email', name='uq_profile_org_email'),
        Index("ix_profile_org_department", "org_id", "department"),
        Index("ix_profile_org_team", "org_id", "team"),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not value or not re.match(r'^[^\s@]+@[^\s@]+\.[^\s@]+$', value.strip()):
            raise ValueError("Invalid email format")
        return value.strip().lower()

    def to_dict(self):
        """Convert profile to dictionary representation (excludes password_hash)"""
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "job_title": self.job_title,
            "department": self.department,
            "team": self.team,
            "phone": self.phone,
            "location": self.location,
            "skills": self.skills or [],
            "bio": self.bio,
            "avatar_url": self.avatar_url,
            "status": self.status,
            "can_login": self.password_hash is not None,
            "last_login_at": isoformat(self.last_login_at),
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
