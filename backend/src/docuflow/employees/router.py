"""Employee directory API endpoints"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..activity.service import log_from_request
from ..api.errors import ApiError, ErrorMessages, bad_request, forbidden
from ..api.responses import success_response
from ..auth.dependencies import AdminUser, CurrentUser
from ..config import get_settings
from ..database import get_db
from ..dependencies import TenantQuery
from ..models.profile import Profile
from .export import EXPORT_FORMATS, build_export
from .import_service import EmployeeImportError, EmployeeImportService
from .schemas import EmployeeCreate, EmployeeUpdate, ImportExecuteRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["employees"])


def _filtered_query(db: Session, org_id: UUID, department: Optional[str], team: Optional[str], search: Optional[str]):
    query = TenantQuery.scoped_query(db, Profile, org_id)
    if department:
        query = query.filter(Profile.department == department)
    if team:
        query = query.filter(Profile.team == team)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Profile.full_name.ilike(pattern), Profile.email.ilike(pattern)))
    return query


# ============================================================================
# Directory
# ============================================================================

@router.get("")
async def list_employees(
    current_user: CurrentUser,
    department: Optional[str] = Query(None),
    team: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Search in name and email"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List employees of the caller's organization, alphabetically."""
    query = _filtered_query(db, current_user.org_id, department, team, search)
    total = query.count()
    employees = query.order_by(Profile.full_name.asc(), Profile.email.asc()).offset(offset).limit(limit).all()
    return success_response({"items": [e.to_dict() for e in employees], "total": total})


@router.get("/export")
async def export_employees(
    request: Request,
    current_user: AdminUser,
    format: str = Query("csv"),
    department: Optional[str] = Query(None),
    team: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Download the directory as CSV, Excel or JSON (admin/owner only).

    Raises:
        ApiError 400: If the format is not csv, xlsx or json
    """
    if format not in EXPORT_FORMATS:
        raise bad_request(f"Unsupported export format. Use one of: {', '.join(EXPORT_FORMATS)}")

    employees = (
        _filtered_query(db, current_user.org_id, department, team, None)
        .order_by(Profile.full_name.asc())
        .all()
    )
    export = build_export(employees, format)

    log_from_request(
        db, request, current_user.org_id, "export", "employees",
        user_id=current_user.id, details={"format": format, "count": len(employees)},
    )
    db.commit()

    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


# ============================================================================
# Bulk import
# ============================================================================

@router.post("/import/preview")
async def preview_import(
    current_user: AdminUser,
    file: UploadFile = File(...),
    sheet_name: Optional[str] = Form(None),
    db: Session = Depends(get_db),
):
    """
    Parse and validate an employee file without importing it (admin/owner only).

    Returns headers, detected field_mapping, per-row validation, sheet_names
    and total_rows.

    Raises:
        ApiError 400: Unsupported, oversized, unreadable or empty file
    """
    # Read at most one byte past the size limit
    file_bytes = await file.read(get_settings().IMPORT_MAX_FILE_SIZE + 1)
    service = EmployeeImportService(db, current_user.org_id)
    try:
        preview = service.preview(file_bytes, file.filename, file.content_type, sheet_name)
    except EmployeeImportError as e:
        raise bad_request(str(e), details=e.details)

    return success_response(preview)


@router.post("/import/execute")
async def execute_import(
    import_data: ImportExecuteRequest,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Create or update employees from previewed rows (admin/owner only).

    Rows granting the owner role are reported as errors unless the caller
    is an owner.

    Raises:
        ApiError 400: No rows or invalid field mapping
    """
    service = EmployeeImportService(db, current_user.org_id, actor_role=current_user.role)
    try:
        result = service.execute(import_data.rows, import_data.field_mapping, import_data.create_new_users)
    except EmployeeImportError as e:
        raise bad_request(str(e), details=e.details)

    log_from_request(
        db, request, current_user.org_id, "import", "employees",
        user_id=current_user.id,
        details={"created": result["created"], "updated": result["updated"], "errors": len(result["errors"])},
    )
    db.commit()

    message = f"Imported {result['created']} new and updated {result['updated']} existing employees"
    return success_response(result, message=message)


# ============================================================================
# Single employee
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_employee(
    employee_data: EmployeeCreate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Add a directory-only employee (admin/owner only).

    Raises:
        ApiError 400: If the email already exists in the organization
        ApiError 403: If a non-owner tries to create an owner
    """
    email = employee_data.email.lower()
    existing = TenantQuery.scoped_query(db, Profile, current_user.org_id).filter(Profile.email == email).first()
    if existing:
        raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorMessages.EMPLOYEE_EXISTS, code="EMPLOYEE_EXISTS")

    if employee_data.role == "owner" and current_user.role != "owner":
        raise forbidden("Only owners can add another owner")

    employee = Profile(
        org_id=current_user.org_id,
        email=email,
        **employee_data.model_dump(exclude={"email"}),
    )
    db.add(employee)
    db.flush()

    log_from_request(
        db, request, current_user.org_id, "create", "employee",
        user_id=current_user.id, resource_id=employee.id, details={"email": email},
    )
    db.commit()
    db.refresh(employee)

    return success_response(employee.to_dict(), message="Employee created")


@router.get("/{employee_id}")
async def get_employee(employee_id: UUID, current_user: CurrentUser, db: Session = Depends(get_db)):
    employee = TenantQuery.get_or_404(db, Profile, employee_id, current_user.org_id, ErrorMessages.EMPLOYEE_NOT_FOUND)
    return success_response(employee.to_dict())


@router.put("/{employee_id}")
async def update_employee(
    employee_id: UUID,
    update_data: EmployeeUpdate,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """
    Update an employee's directory fields, role or status (admin/owner only).

    Raises:
        ApiError 403: Non-owner modifying an owner or granting the owner role
        ApiError 404: Employee not found
    """
    employee = TenantQuery.get_or_404(db, Profile, employee_id, current_user.org_id, ErrorMessages.EMPLOYEE_NOT_FOUND)

    changes = update_data.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request(ErrorMessages.INVALID_INPUT)

    if current_user.role != "owner" and (employee.role == "owner" or changes.get("role") == "owner"):
        raise forbidden("Only owners can change owner accounts")
    if employee.id == current_user.id and changes.get("status") == "DISABLED":
        raise bad_request("You cannot disable your own account")

    for field, value in changes.items():
        setattr(employee, field, value)

    log_from_request(
        db, request, current_user.org_id, "update", "employee",
        user_id=current_user.id, resource_id=employee.id, details={"fields": sorted(changes)},
    )
    db.commit()
    db.refresh(employee)

    return success_response(employee.to_dict(), message="Employee updated")


@router.delete("/{employee_id}")
async def delete_employee(
    employee_id: UUID,
    request: Request,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    employee = TenantQuery.get_or_404(db, Profile, employee_id, current_user.org_id, ErrorMessages.EMPLOYEE_NOT_FOUND)

    if employee.id == current_user.id:
        raise bad_request("You cannot delete your own account")
    if employee.role == "owner" and current_user.role != "owner":
        raise forbidden("Only owners can remove owner accounts")

    log_from_request(
        db, request, current_user.org_id, "delete", "employee",
        user_id=current_user.id, resource_id=employee.id, details={"email": employee.email},
    )
    db.delete(employee)
    db.commit()

    return success_response({"id": str(employee_id)}, message="Employee deleted")
