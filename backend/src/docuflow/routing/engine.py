"""Routing rule evaluation and folder path generation.

Rules are evaluated in priority order (highest first); the first active rule
whose conditions all hold wins. A rule without conditions matches every
message. Supported conditions:

    sender_pattern     regex searched in the sender email (case-insensitive)
    subject_pattern    regex searched in the raw or normalized subject
    file_types         list of extensions; any attachment must have one of them
    requires_employee  true: sender resolved to an employee or open request

The winning rule's folder template is expanded with message metadata and
sanitized into a storage path.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_TEMPLATE = "documents/{date}"

_SUBJECT_PREFIX = re.compile(r"^(fwd:re|re:fwd|re:fw|fwd:fw|re|fwd|fw):\s*", re.IGNORECASE)
_SUBJECT_TAG = re.compile(r"^\[.*?\]\s*")
_UNSAFE_PATH_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')
_REPEATED_SLASHES = re.compile(r"/+")
_PLACEHOLDER = re.compile(r"\{(\w+)\}")

CONDITION_KEYS = ("sender_pattern", "subject_pattern", "file_types", "requires_employee")


@dataclass
class RoutingContext:
    """Metadata of one inbound message, as seen by the rules engine."""
    sender_email: str
    sender_name: Optional[str] = None
    subject: str = ""
    attachment_filenames: Sequence[str] = ()
    employee_name: Optional[str] = None
    employee_email: Optional[str] = None
    document_request_id: Optional[str] = None
    received_at: Optional[datetime] = None

    @property
    def has_employee(self) -> bool:
        return bool(self.employee_email or self.employee_name or self.document_request_id)

    @property
    def extensions(self) -> List[str]:
        return [file_extension(name) for name in self.attachment_filenames]


@dataclass
class RuleMatch:
    rule: Any
    matched_conditions: List[str] = field(default_factory=list)


@dataclass
class RoutingDecision:
    """Outcome of routing one message: matched rule (if any) and target folder."""
    rule: Any
    folder_path: str
    storage_id: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @property
    def rule_id(self):
        return getattr(self.rule, "id", None) if self.rule is not None else None


def file_extension(filename: str) -> str:
    """Lowercased extension without the dot ("" when there is none)."""
    return os.path.splitext(filename or "")[1].lower().lstrip(".")


def normalize_subject(subject: Optional[str]) -> str:
    """Strip one reply/forward prefix and a leading [tag] from a subject.

    >>> normalize_subject("RE: [Ticket 42] Passport copy")
    'Passport copy'
    """
    if not subject:
        return ""
    normalized = _SUBJECT_PREFIX.sub("", subject.strip(), count=1)
    normalized = _SUBJECT_TAG.sub("", normalized, count=1)
    return normalized.strip()


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a user pattern the way the engine evaluates it.

    Raises:
        re.error: If the pattern is not a valid regular expression
    """
    return re.compile(pattern, re.IGNORECASE)


def validate_pattern(pattern: Optional[str]) -> Optional[str]:
    """Return an error message for an invalid pattern, None when valid."""
    if not pattern:
        return None
    try:
        compile_pattern(pattern)
    except re.error as e:
        return f"Invalid regular expression '{pattern}': {e}"
    return None


def _normalize_file_types(file_types: Iterable[str]) -> set[str]:
    return {str(ext).lower().strip().lstrip(".") for ext in file_types if str(ext).strip()}


def evaluate_conditions(conditions: Optional[dict], context: RoutingContext) -> tuple[bool, List[str]]:
    """Check every specified condition of a rule against the context.

    Returns:
        (all_conditions_hold, names_of_conditions_checked)
    """
    conditions = conditions or {}
    matched: List[str] = []

    sender_pattern = conditions.get("sender_pattern")
    if sender_pattern:
        if not compile_pattern(sender_pattern).search(context.sender_email or ""):
            return False, matched
        matched.append("sender_pattern")

    subject_pattern = conditions.get("subject_pattern")
    if subject_pattern:
        regex = compile_pattern(subject_pattern)
        subject = context.subject or ""
        if not (regex.search(subject) or regex.search(normalize_subject(subject))):
            return False, matched
        matched.append("subject_pattern")

    file_types = conditions.get("file_types")
    if file_types:
        wanted = _normalize_file_types(file_types)
        if not any(ext in wanted for ext in context.extensions if ext):
            return False, matched
        matched.append("file_types")

    if conditions.get("requires_employee"):
        if not context.has_employee:
            return False, matched
        matched.append("requires_employee")

    return True, matched


def match_routing_rule(rules: Iterable[Any], context: RoutingContext) -> Optional[RuleMatch]:
    """Return the first active rule, by descending priority, whose conditions hold.

    Rules with equal priority keep their input order. A rule whose pattern
    does not compile never matches; the error is logged and evaluation
    continues with the next rule.
    """
    active = [rule for rule in rules if getattr(rule, "is_active", True)]
    ordered = sorted(active, key=lambda rule: getattr(rule, "priority", 0) or 0, reverse=True)

    for rule in ordered:
        try:
            holds, matched = evaluate_conditions(getattr(rule, "conditions", None), context)
        except re.error as e:
            logger.warning(
                f"Skipping routing rule '{getattr(rule, 'name', '?')}' with invalid pattern: {e}",
                extra={"rule_id": getattr(rule, "id", None)},
            )
            continue
        if holds:
            return RuleMatch(rule=rule, matched_conditions=matched)

    return None


def _path_value(value: Optional[str]) -> str:
    # Substituted values must not introduce extra path segments
    return (value or "").replace("/", "_").replace("\\", "_").strip()


def sanitize_path(path: str) -> str:
    """Replace characters storage providers reject and tidy the slashes."""
    path = _UNSAFE_PATH_CHARS.sub("_", path.replace("\\", "/"))
    segments = [segment.strip() for segment in _REPEATED_SLASHES.split(path)]
    segments = [segment for segment in segments if segment and segment not in (".", "..")]
    return "/".join(segments)


def generate_storage_path(
    template: Optional[str],
    context: RoutingContext,
    now: Optional[datetime] = None,
) -> str:
    """Expand a folder template for a message.

    Placeholders: {sender_email}, {sender_name}, {employee_name},
    {employee_email}, {date} (YYYY-MM-DD), {year}, {month} (zero padded).
    Unknown placeholders are left as written.

    >>> ctx = RoutingContext(sender_email="ana@example.com", sender_name="Ana")
    >>> generate_storage_path("in/{sender_name}/{year}", ctx, datetime(2024, 3, 9))
    'in/Ana/2024'
    """
    when = now or context.received_at or datetime.now(timezone.utc)
    sender_name = context.sender_name or context.sender_email

    values = {
        "sender_email": _path_value(context.sender_email),
        "sender_name": _path_value(sender_name),
        "employee_name": _path_value(context.employee_name or sender_name),
        "employee_email": _path_value(context.employee_email or context.sender_email),
        "date": when.strftime("%Y-%m-%d"),
        "year": f"{when.year:04d}",
        "month": f"{when.month:02d}",
    }

    expanded = _PLACEHOLDER.sub(
        lambda m: values.get(m.group(1), m.group(0)),
        template or DEFAULT_FOLDER_TEMPLATE,
    )
    return sanitize_path(expanded)


def resolve_route(
    rules: Iterable[Any],
    context: RoutingContext,
    now: Optional[datetime] = None,
) -> RoutingDecision:
    """Pick the rule for a message and compute its folder path.

    Without a matching rule the message goes to DEFAULT_FOLDER_TEMPLATE.
    """
    match = match_routing_rule(rules, context)
    if match is None:
        return RoutingDecision(rule=None, folder_path=generate_storage_path(DEFAULT_FOLDER_TEMPLATE, context, now))

    actions = getattr(match.rule, "actions", None) or {}
    folder_path = generate_storage_path(actions.get("folder_path") or DEFAULT_FOLDER_TEMPLATE, context, now)
    storage_id = actions.get("storage_id")
    return RoutingDecision(
        rule=match.rule,
        folder_path=folder_path,
        storage_id=str(storage_id) if storage_id else None,
        metadata=dict(actions.get("metadata") or {}),
    )
