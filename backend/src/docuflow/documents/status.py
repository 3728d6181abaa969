"""DocumentStatus state machine for received documents

State flow:
RECEIVED → PROCESSED → VERIFIED or REJECTED
REJECTED can be re-reviewed (back to PROCESSED)
"""

from enum import Enum
from typing import Dict, List, Optional


class DocumentStatus(str, Enum):
    RECEIVED = "received"    # Stored from an inbound email
    PROCESSED = "processed"  # Reviewed / classified
    VERIFIED = "verified"    # Accepted (terminal)
    REJECTED = "rejected"    # Not acceptable


ALLOWED_TRANSITIONS: Dict[Optional[DocumentStatus], List[DocumentStatus]] = {
    None: [DocumentStatus.RECEIVED],
    DocumentStatus.RECEIVED: [DocumentStatus.PROCESSED, DocumentStatus.REJECTED],
    DocumentStatus.PROCESSED: [DocumentStatus.VERIFIED, DocumentStatus.REJECTED],
    DocumentStatus.VERIFIED: [],
    DocumentStatus.REJECTED: [DocumentStatus.PROCESSED],
}


def can_transition(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> bool:
    """
    Example:
        >>> can_transition(DocumentStatus.RECEIVED, DocumentStatus.PROCESSED)
        True
        >>> can_transition(DocumentStatus.VERIFIED, DocumentStatus.REJECTED)
        False
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def get_allowed_transitions(from_status: Optional[DocumentStatus]) -> List[DocumentStatus]:
    return ALLOWED_TRANSITIONS.get(from_status, [])
