"""Row validation for employee imports"""

import json
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from ..auth.roles import VALID_ROLES
from .field_mapping import REQUIRED_FIELDS

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DEFAULT_ROLE = "member"

DUPLICATE_IN_FILE = "Duplicate email in import file"
EXISTING_EMPLOYEE = "Employee with this email already exists (will be updated)"

FIELD_LABELS = {
    "email": "Email",
    "full_name": "Full name",
}


@dataclass
class RowValidation:
    """Validation outcome of one mapped row. row_index is 1-based."""
    row_index: int
    data: Dict[str, Any]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "data": self.data,
            "errors": self.errors,
            "warnings": self.warnings,
            "is_valid": self.is_valid,
        }


@dataclass
class ValidationResult:
    rows: List[RowValidation]
    duplicate_emails: List[str] = field(default_factory=list)

    @property
    def valid_rows(self) -> List[RowValidation]:
        return [row for row in self.rows if row.is_valid]

    @property
    def invalid_rows(self) -> List[RowValidation]:
        return [row for row in self.rows if not row.is_valid]

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def error_count(self) -> int:
        return sum(len(row.errors) for row in self.rows)

    @property
    def warning_count(self) -> int:
        return sum(len(row.warnings) for row in self.rows)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "valid_rows": [row.to_dict() for row in self.valid_rows],
            "invalid_rows": [row.to_dict() for row in self.invalid_rows],
            "duplicate_emails": self.duplicate_emails,
            "total_rows": self.total_rows,
            "valid_count": len(self.valid_rows),
            "error_count": self.error_count,
            "warning_count": self.warning_count,
        }


def parse_skills(value: Optional[str]) -> List[str]:
    """Read skills from a JSON array, falling back to a comma separated list.

    >>> parse_skills('["python", "sql"]')
    ['python', 'sql']
    >>> parse_skills("python, sql,")
    ['python', 'sql']
    """
    if not value:
        return []
    text = value.strip()
    if text.startswith("["):
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            return [str(item).strip() for item in parsed if str(item).strip()]
    return [part.strip() for part in text.split(",") if part.strip()]


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Keep digits and '+' only."""
    if not value:
        return None
    cleaned = re.sub(r"[^\d+]", "", value)
    return cleaned or None


def validate_row(raw: Dict[str, Any], row_index: int) -> RowValidation:
    """Validate and normalize one row already keyed by field name."""
    errors: List[str] = []
    warnings: List[str] = []
    data: Dict[str, Any] = {}

    for required in REQUIRED_FIELDS:
        if not str(raw.get(required) or "").strip():
            errors.append(f"{FIELD_LABELS[required]} is required")

    email = str(raw.get("email") or "").strip().lower()
    if email:
        if EMAIL_PATTERN.match(email):
            data["email"] = email
        else:
            errors.append(f"Invalid email format: {email}")
            data["email"] = email

    full_name = str(raw.get("full_name") or "").strip()
    if full_name:
        data["full_name"] = full_name

    role = str(raw.get("role") or "").strip().lower()
    if not role:
        data["role"] = DEFAULT_ROLE
    elif role in VALID_ROLES:
        data["role"] = role
    else:
        errors.append(f"Invalid role '{role}'. Must be one of: {', '.join(sorted(VALID_ROLES))}")
        data["role"] = DEFAULT_ROLE

    if raw.get("skills") not in (None, ""):
        data["skills"] = parse_skills(str(raw["skills"]))

    if raw.get("phone") not in (None, ""):
        phone = normalize_phone(str(raw["phone"]))
        if phone:
            data["phone"] = phone
        else:
            warnings.append("Phone number contains no digits and was ignored")

    for name in ("job_title", "department", "team", "location", "bio", "avatar_url"):
        value = str(raw.get(name) or "").strip()
        if value:
            data[name] = value

    return RowValidation(row_index=row_index, data=data, errors=errors, warnings=warnings)


def validate_rows(rows: Iterable[Dict[str, Any]], existing_emails: Optional[Set[str]] = None) -> ValidationResult:
    """Validate mapped rows and apply the cross-row checks.

    Emails appearing more than once in the file invalidate every affected
    row. Emails already in the organization only produce a warning since
    those rows update the existing employee.
    """
    existing_emails = {email.lower() for email in (existing_emails or set())}
    results = [validate_row(row, idx) for idx, row in enumerate(rows, start=1)]

    counts = Counter(result.data["email"] for result in results if result.data.get("email"))
    duplicates = sorted(email for email, count in counts.items() if count > 1)
    duplicate_set = set(duplicates)

    for result in results:
        email = result.data.get("email")
        if not email:
            continue
        if email in duplicate_set:
            result.errors.append(DUPLICATE_IN_FILE)
        if email in existing_emails:
            result.warnings.append(EXISTING_EMPLOYEE)

    return ValidationResult(rows=results, duplicate_emails=duplicates)
