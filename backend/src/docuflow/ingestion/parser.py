"""MIME parsing of inbound document emails.

Turns a raw RFC 822 message into a ParsedEmail: sender, recipients,
subject, text/HTML body and file attachments. Supports RFC 2047 encoded
headers and filenames and nested multipart messages.
"""

import email
import email.policy
import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import getaddresses, parsedate_to_datetime
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass
class EmailAddress:
    email: str
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"email": self.email, "name": self.name}


@dataclass
class Attachment:
    filename: str
    content: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ParsedEmail:
    id: str
    sender: EmailAddress
    to: List[EmailAddress] = field(default_factory=list)
    cc: List[EmailAddress] = field(default_factory=list)
    subject: str = ""
    body_text: Optional[str] = None
    body_html: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)
    date: Optional[datetime] = None

    def summary(self) -> dict:
        """JSON-safe description without attachment content."""
        return {
            "id": self.id,
            "from": self.sender.to_dict(),
            "to": [a.to_dict() for a in self.to],
            "cc": [a.to_dict() for a in self.cc],
            "subject": self.subject,
            "date": self.date.isoformat() if self.date else None,
            "attachments": [
                {"filename": a.filename, "mime_type": a.mime_type, "size": a.size} for a in self.attachments
            ],
        }


def _addresses(value) -> List[EmailAddress]:
    if not value:
        return []
    result = []
    for name, address in getaddresses([str(value)]):
        if address and "@" in address:
            result.append(EmailAddress(email=address.strip().lower(), name=name.strip() or None))
    return result


def _parse_date(msg: EmailMessage) -> Optional[datetime]:
    try:
        value = msg.get("Date")
        if not value:
            return None
        parsed = parsedate_to_datetime(str(value))
    except (TypeError, ValueError):
        logger.warning("Unparseable Date header, ignoring")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _raw_header(msg: EmailMessage, name: str) -> str:
    """Unparsed header value; Date headers with bad values fail structured parsing."""
    for key, value in msg.raw_items():
        if key.lower() == name.lower():
            return str(value).strip()
    return ""


def synthetic_message_id(sender: str, to: str, subject: str, date: str) -> str:
    """Deterministic Message-ID for emails missing the header."""
    digest = hashlib.sha256(f"{sender}{to}{subject}{date}".encode()).hexdigest()[:16]
    return f"<synthetic-{digest}@docuflow.generated>"


def _body(msg: EmailMessage, subtype: str) -> Optional[str]:
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return None
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError) as e:
        logger.warning(f"Could not decode {subtype} body: {e}")
        return None


def extract_attachments(msg: EmailMessage) -> List[Attachment]:
    """Collect file parts from the whole MIME tree.

    Skips multipart containers, parts without a filename and inline images
    (signatures, logos).
    """
    attachments = []
    for part in msg.walk():
        if part.get_content_maintype() == "multipart":
            continue

        filename = part.get_filename()
        if not filename:
            continue

        disposition = (part.get_content_disposition() or "").lower()
        if disposition == "inline" and part.get_content_maintype() == "image":
            continue

        content = part.get_payload(decode=True)
        if not content:
            logger.warning(f"Attachment {filename} has no content, skipping")
            continue

        attachments.append(Attachment(filename=filename.strip(), content=content, mime_type=part.get_content_type()))

    return attachments


def parse_email(raw_message: bytes) -> ParsedEmail:
    """Parse raw MIME bytes.

    Raises:
        ValueError: If the message cannot be parsed or has no usable sender
    """
    try:
        msg = email.message_from_bytes(raw_message, policy=email.policy.default)
    except (TypeError, ValueError, IndexError) as e:
        logger.error(f"Failed to parse MIME message: {e}")
        raise ValueError(f"Invalid MIME message: {e}")

    senders = _addresses(msg.get("Reply-To")) if not msg.get("From") else _addresses(msg.get("From"))
    if not senders:
        raise ValueError("Email has no valid sender address")

    subject = str(msg.get("Subject") or "").strip()
    message_id = str(msg.get("Message-ID") or "").strip()
    if not message_id:
        message_id = synthetic_message_id(
            senders[0].email, str(msg.get("To") or ""), subject, _raw_header(msg, "Date")
        )
        logger.warning(f"Email missing Message-ID, generated synthetic: {message_id}")

    return ParsedEmail(
        id=message_id,
        sender=senders[0],
        to=_addresses(msg.get("To")),
        cc=_addresses(msg.get("Cc")),
        subject=subject,
        body_text=_body(msg, "plain"),
        body_html=_body(msg, "html"),
        attachments=extract_attachments(msg),
        date=_parse_date(msg),
    )
