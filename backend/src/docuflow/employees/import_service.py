"""Employee CSV/Excel import service with upsert logic"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..auth.password import generate_initial_password, hash_password
from ..config import get_settings
from ..models.profile import Profile
from .field_mapping import apply_field_mapping, detect_field_mapping, validate_field_mapping
from .parsers import FileParseError, detect_file_kind, parse_csv, parse_excel
from .validation import validate_row, validate_rows

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
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
)


class EmployeeImportError(ValueError):
    """Import request rejected as a whole (bad file, bad mapping, nothing to import)."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class EmployeeImportService:
    """Preview and execute bulk employee imports for one organization"""

    def __init__(self, db: Session, org_id: UUID, actor_role: Optional[str] = None):
        self.db = db
        self.org_id = org_id
        self.actor_role = actor_role

    def _existing_profiles(self) -> Dict[str, Profile]:
        profiles = self.db.query(Profile).filter(Profile.org_id == self.org_id).all()
        return {profile.email: profile for profile in profiles}

    def preview(
        self,
        file_bytes: bytes,
        filename: Optional[str],
        content_type: Optional[str],
        sheet_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Parse an upload, guess the column mapping and validate every row.

        Nothing is written to the database.

        Raises:
            EmployeeImportError: If the file is too large, of an unsupported
                type, unreadable, empty or has too many rows
        """
        settings = get_settings()
        max_mb = settings.IMPORT_MAX_FILE_SIZE // (1024 * 1024)
        if len(file_bytes) > settings.IMPORT_MAX_FILE_SIZE:
            raise EmployeeImportError(f"File too large. Maximum size is {max_mb} MB")

        kind = detect_file_kind(filename, content_type)
        if kind is None:
            raise EmployeeImportError("Invalid file type. Please upload a CSV or Excel file (.csv, .xlsx)")

        try:
            parsed = parse_csv(file_bytes) if kind == "csv" else parse_excel(file_bytes, sheet_name)
        except FileParseError as e:
            raise EmployeeImportError(str(e))

        if not parsed.rows:
            raise EmployeeImportError("File contains no data rows")
        if len(parsed.rows) > settings.IMPORT_MAX_ROWS:
            raise EmployeeImportError(
                f"Too many rows. Maximum is {settings.IMPORT_MAX_ROWS} rows per import",
                details={"total_rows": len(parsed.rows)},
            )

        field_mapping = detect_field_mapping(parsed.headers)
        mapped_rows = [apply_field_mapping(row, field_mapping) for row in parsed.rows]
        validation = validate_rows(mapped_rows, set(self._existing_profiles()))

        logger.info(
            f"Import preview: {validation.total_rows} rows, {len(validation.valid_rows)} valid",
            extra={"org_id": str(self.org_id)},
        )

        return {
            "headers": parsed.headers,
            "field_mapping": field_mapping,
            "validation": validation.to_dict(),
            "sheet_names": parsed.sheet_names,
            "total_rows": len(parsed.rows),
        }

    def execute(
        self,
        rows: List[Dict[str, Any]],
        field_mapping: Dict[str, Optional[str]],
        create_new_users: bool = False,
    ) -> Dict[str, Any]:
        """
        Upsert employees from rows keyed by field name.

        Existing emails are updated with the mapped fields only. New emails
        are inserted; with create_new_users they get a login-capable account
        with a random initial password, otherwise a directory-only profile.
        Only an owner may grant the owner role. Rows that fail are reported
        and skipped. The caller commits.

        Returns:
            {"created": int, "updated": int, "errors": [{"row_index", "email", "error"}]}

        Raises:
            EmployeeImportError: If there are no rows or the mapping is unusable
        """
        if not rows:
            raise EmployeeImportError("No valid rows to import")

        mapping_errors = validate_field_mapping(field_mapping)
        if mapping_errors:
            raise EmployeeImportError("Invalid field mapping", details=mapping_errors)

        mapped_fields = {field for field in field_mapping.values() if field}
        existing = self._existing_profiles()
        seen: set[str] = set()

        created = 0
        updated = 0
        errors: List[Dict[str, Any]] = []

        for position, row in enumerate(rows, start=1):
            row_index = row.get("row_index") or position
            fields = {key: value for key, value in row.items() if key != "row_index"}
            result = validate_row(fields, row_index)
            email = result.data.get("email")

            if not result.is_valid:
                errors.append({"row_index": row_index, "email": email, "error": "; ".join(result.errors)})
                continue
            if email in seen:
                errors.append({"row_index": row_index, "email": email, "error": "Duplicate email in import file"})
                continue
            seen.add(email)

            try:
                profile = existing.get(email)
                if profile is not None:
                    self._update_profile(profile, result.data, mapped_fields)
                    updated += 1
                else:
                    profile = self._create_profile(result.data, create_new_users)
                    existing[email] = profile
                    created += 1
            except ValueError as e:
                errors.append({"row_index": row_index, "email": email, "error": str(e)})

        self.db.flush()

        logger.info(
            f"Employee import finished: {created} created, {updated} updated, {len(errors)} errors",
            extra={"org_id": str(self.org_id)},
        )
        return {"created": created, "updated": updated, "errors": errors}

    def _check_owner_grant(self, role: Optional[str]) -> None:
        if role == "owner" and self.actor_role != "owner":
            raise ValueError("Only owners can grant the owner role")

    def _update_profile(self, profile: Profile, data: Dict[str, Any], mapped_fields: set) -> None:
        if "role" in mapped_fields and profile.role != "owner":
            self._check_owner_grant(data.get("role"))

        for name in UPDATABLE_FIELDS:
            if name not in mapped_fields or name not in data:
                continue
            # Owners are never demoted by a spreadsheet
            if name == "role" and profile.role == "owner":
                continue
            setattr(profile, name, data[name])

    def _create_profile(self, data: Dict[str, Any], create_login: bool) -> Profile:
        self._check_owner_grant(data.get("role"))
        profile = Profile(
            org_id=self.org_id,
            email=data["email"],
            full_name=data.get("full_name"),
            role=data.get("role", "member"),
            job_title=data.get("job_title"),
            department=data.get("department"),
            team=data.get("team"),
            phone=data.get("phone"),
            location=data.get("location"),
            skills=data.get("skills"),
            bio=data.get("bio"),
            avatar_url=data.get("avatar_url"),
            password_hash=hash_password(generate_initial_password()) if create_login else None,
            status="ACTIVE",
        )
        self.db.add(profile)
        return profile
