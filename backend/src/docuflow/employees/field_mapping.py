"""Header-to-field mapping for employee import files.

Spreadsheets exported from HR tools name their columns in many ways
("E-mail Address", "Employee Name", "Dept"). Each header is matched against
a static synonym table; unmatched headers are ignored on import.
"""

from typing import Dict, Iterable, List, Optional

IMPORTABLE_FIELDS: List[str] = [
    "email",
    "full_name",
    "role",
    "job_title",
    "department",
    "team",
    "phone",
    "location",
    "skills",
    "bio",
    "avatar_url",
]

REQUIRED_FIELDS: List[str] = ["email", "full_name"]

FIELD_SYNONYMS: Dict[str, List[str]] = {
    "email": ["email", "e-mail", "email address", "e-mail address"],
    "full_name": ["full name", "name", "fullname", "employee name", "person name"],
    "role": ["role", "user role", "permission", "access level"],
    "job_title": ["job title", "title", "position", "job", "job position"],
    "department": ["department", "dept", "division", "unit"],
    "team": ["team", "group", "squad", "pod"],
    "phone": ["phone", "phone number", "telephone", "mobile", "cell"],
    "location": ["location", "office", "city", "address", "office location"],
    "skills": ["skills", "skill", "expertise", "competencies"],
    "bio": ["bio", "biography", "description", "about", "summary"],
    "avatar_url": ["avatar", "avatar url", "photo", "picture", "profile picture"],
}


def detect_field(header: str) -> Optional[str]:
    """Return the importable field a header most likely holds, or None.

    Fields are tried in IMPORTABLE_FIELDS order; the first one with a synonym
    equal to, or contained in, the normalized header wins.
    """
    normalized = (header or "").strip().lower()
    if not normalized:
        return None

    for field in IMPORTABLE_FIELDS:
        for synonym in FIELD_SYNONYMS[field]:
            if normalized == synonym or synonym in normalized:
                return field

    if normalized in IMPORTABLE_FIELDS:
        return normalized
    return None


def detect_field_mapping(headers: Iterable[str]) -> Dict[str, Optional[str]]:
    """Map every header to an importable field (None when unrecognized)."""
    return {header: detect_field(header) for header in headers}


def validate_field_mapping(mapping: Dict[str, Optional[str]]) -> List[str]:
    """Return error messages for a user-edited mapping (empty when usable)."""
    errors = []
    for header, field in mapping.items():
        if field is not None and field not in IMPORTABLE_FIELDS:
            errors.append(f"Unknown field '{field}' for column '{header}'")

    mapped = {field for field in mapping.values() if field}
    for field in REQUIRED_FIELDS:
        if field not in mapped:
            errors.append(f"Required field '{field}' is not mapped")
    return errors


def apply_field_mapping(row: Dict[str, str], mapping: Dict[str, Optional[str]]) -> Dict[str, str]:
    """Re-key a raw row by field name, keeping the first non-empty value per field."""
    mapped: Dict[str, str] = {}
    for header, field in mapping.items():
        if not field:
            continue
        value = row.get(header)
        if value is None:
            continue
        value = str(value).strip()
        if value and not mapped.get(field):
            mapped[field] = value
    return mapped
