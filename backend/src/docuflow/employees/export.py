"""Employee directory export to CSV, Excel and JSON"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, Iterable, List, Optional, Sequence

from openpyxl import Workbook

from ..models.base import isoformat
from ..models.profile import Profile
from .parsers import convert_to_csv

EXPORT_FORMATS = ("csv", "xlsx", "json")

DEFAULT_EXPORT_FIELDS: List[str] = [
    "full_name",
    "email",
    "role",
    "job_title",
    "department",
    "team",
    "phone",
    "location",
    "skills",
    "bio",
    "created_at",
    "updated_at",
]

FIELD_LABELS: Dict[str, str] = {
    "full_name": "Full Name",
    "email": "Email",
    "role": "Role",
    "job_title": "Job Title",
    "department": "Department",
    "team": "Team",
    "phone": "Phone",
    "location": "Location",
    "skills": "Skills",
    "bio": "Bio",
    "created_at": "Created At",
    "updated_at": "Updated At",
}

MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "json": "application/json",
}


@dataclass
class ExportFile:
    content: bytes
    media_type: str
    filename: str


def export_value(profile: Profile, field: str) -> str:
    value = getattr(profile, field, None)
    if field == "skills":
        return ", ".join(value or [])
    if isinstance(value, datetime):
        return isoformat(value)
    return "" if value is None else str(value)


def build_export(
    profiles: Iterable[Profile],
    fmt: str = "csv",
    fields: Optional[Sequence[str]] = None,
    today: Optional[datetime] = None,
) -> ExportFile:
    """Render profiles as a downloadable file named employees_YYYY-MM-DD.<ext>.

    Raises:
        ValueError: If the format or a field is not supported
    """
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format '{fmt}'. Use one of: {', '.join(EXPORT_FORMATS)}")

    fields = list(fields or DEFAULT_EXPORT_FIELDS)
    unknown = [field for field in fields if field not in FIELD_LABELS]
    if unknown:
        raise ValueError(f"Unsupported export fields: {', '.join(unknown)}")

    labels = [FIELD_LABELS[field] for field in fields]
    records: List[Dict[str, Any]] = [
        {field: export_value(profile, field) for field in fields} for profile in profiles
    ]

    if fmt == "csv":
        rows = [{FIELD_LABELS[k]: v for k, v in record.items()} for record in records]
        content = convert_to_csv(labels, rows).encode("utf-8")
    elif fmt == "xlsx":
        wb = Workbook()
        ws = wb.active
        ws.title = "Employees"
        ws.append(labels)
        for record in records:
            ws.append([record[field] for field in fields])
        buffer = BytesIO()
        wb.save(buffer)
        content = buffer.getvalue()
    else:
        content = json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")

    date_str = (today or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return ExportFile(content=content, media_type=MEDIA_TYPES[fmt], filename=f"employees_{date_str}.{fmt}")
