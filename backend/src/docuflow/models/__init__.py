"""SQLAlchemy Models for Docuflow"""

from .base import Base
from .org import Org
from .profile import Profile
from .email_account import EmailAccount
from .storage_config import StorageConfig, StorageProvider
from .routing_rule import RoutingRule
from .document_request import DocumentRequest, DocumentRequestStatusHistory
from .document import Document
from .activity_log import ActivityLog

__all__ = [
    "Base",
    "Org",
    "Profile",
    "EmailAccount",
    "StorageConfig",
    "StorageProvider",
    "RoutingRule",
    "DocumentRequest",
    "DocumentRequestStatusHistory",
    "Document",
    "ActivityLog",
]
