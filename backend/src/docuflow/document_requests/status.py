"""RequestStatus state machine for the document request lifecycle

State flow:
PENDING → SENT → RECEIVED → VERIFYING → COMPLETED
Requests still waiting can expire; incomplete submissions go to MISSING_FILES.
"""

from enum import Enum
from typing import Dict, List, Optional


class RequestStatus(str, Enum):
    PENDING = "pending"              # Created, not yet emailed
    SENT = "sent"                    # Request email delivered
    RECEIVED = "received"            # Reply with attachments arrived
    VERIFYING = "verifying"          # Documents linked, under review
    MISSING_FILES = "missing_files"  # Reply incomplete, waiting for more
    COMPLETED = "completed"          # All expected documents in (terminal)
    EXPIRED = "expired"              # Due date passed without documents


ALLOWED_TRANSITIONS: Dict[Optional[RequestStatus], List[RequestStatus]] = {
    None: [RequestStatus.PENDING],
    RequestStatus.PENDING: [RequestStatus.SENT, RequestStatus.RECEIVED, RequestStatus.EXPIRED, RequestStatus.COMPLETED],
    RequestStatus.SENT: [
        RequestStatus.RECEIVED, RequestStatus.MISSING_FILES, RequestStatus.EXPIRED, RequestStatus.COMPLETED,
    ],
    RequestStatus.RECEIVED: [RequestStatus.VERIFYING, RequestStatus.MISSING_FILES, RequestStatus.COMPLETED],
    RequestStatus.VERIFYING: [RequestStatus.COMPLETED, RequestStatus.MISSING_FILES, RequestStatus.RECEIVED],
    RequestStatus.MISSING_FILES: [
        RequestStatus.SENT, RequestStatus.RECEIVED, RequestStatus.EXPIRED, RequestStatus.COMPLETED,
    ],
    RequestStatus.EXPIRED: [RequestStatus.PENDING, RequestStatus.SENT],
    RequestStatus.COMPLETED: [],
}

# Requests an inbound email from the recipient can still be matched to
OPEN_STATUSES = [RequestStatus.PENDING, RequestStatus.SENT, RequestStatus.RECEIVED, RequestStatus.VERIFYING]


def can_transition(from_status: Optional[RequestStatus], to_status: RequestStatus) -> bool:
    """Validate if status transition is allowed

    Example:
        >>> can_transition(RequestStatus.SENT, RequestStatus.RECEIVED)
        True
        >>> can_transition(RequestStatus.COMPLETED, RequestStatus.PENDING)
        False
    """
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def get_allowed_transitions(from_status: Optional[RequestStatus]) -> List[RequestStatus]:
    return ALLOWED_TRANSITIONS.get(from_status, [])
