"""API error type and user-facing message catalog."""

from typing import Any, Optional

from fastapi import HTTPException, status


class ErrorMessages:
    """User-friendly error messages for common scenarios"""

    # Authentication
    UNAUTHORIZED = "You must be logged in to access this resource."
    FORBIDDEN = "You don't have permission to perform this action."
    SESSION_EXPIRED = "Your session has expired. Please log in again."
    INVALID_CREDENTIALS = "Invalid email or password."
    RATE_LIMITED = "Too many requests. Please wait before trying again."

    # Organization
    NO_ORGANIZATION = "Please create or join an organization first."
    ORGANIZATION_NOT_FOUND = "Organization not found."
    ADMIN_REQUIRED = "Only administrators can perform this action."

    # Employees
    EMPLOYEE_NOT_FOUND = "Employee not found."
    EMPLOYEE_EXISTS = "An employee with this email is already in your organization"

    # Documents
    DOCUMENT_NOT_FOUND = "Document not found."

    # Requests
    REQUEST_NOT_FOUND = "Document request not found."

    # Routing rules
    RULE_NOT_FOUND = "Routing rule not found."
    RULES_ALREADY_EXIST = "Routing rules already exist. Delete existing rules first or create them manually."

    # Storage
    STORAGE_NOT_FOUND = "Storage configuration not found."
    NO_ACTIVE_STORAGE = "No active storage configuration found. Please configure storage first."
    STORAGE_CONNECTION_FAILED = "Failed to connect to storage. Please check your configuration."
    STORAGE_UPLOAD_FAILED = "Failed to upload file to storage."

    # Email
    EMAIL_ACCOUNT_NOT_FOUND = "Email account not found."
    EMAIL_EMPTY = "Request body must contain a raw RFC 822 message."
    EMAIL_TOO_LARGE = "Email message exceeds the maximum allowed size."

    # OAuth
    OAUTH_CONFIG_MISSING = "OAuth configuration is missing. Please contact support."
    OAUTH_TOKEN_EXPIRED = "OAuth token has expired. Please reconnect your account."

    # Validation
    INVALID_EMAIL = "Please enter a valid email address."
    INVALID_INPUT = "Invalid input provided. Please check your data and try again."
    REQUIRED_FIELD_MISSING = "Required fields are missing."

    # General
    INTERNAL_ERROR = "An unexpected error occurred. Please try again later."
    DATABASE_ERROR = "A database error occurred. Please try again later."


class ApiError(HTTPException):
    """HTTPException carrying an optional machine-readable code and details.

    Rendered by the application exception handler as
    {"success": false, "error": ..., "message": ..., "code"?, "details"?}.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        code: Optional[str] = None,
        details: Any = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=error, headers=headers)
        self.code = code
        self.details = details


def bad_request(error: str, details: Any = None) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, error, details=details)


def not_found(error: str = "Resource not found") -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, error)


def forbidden(error: str = ErrorMessages.FORBIDDEN) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, error)
