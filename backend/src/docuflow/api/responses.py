"""Response envelope helpers.

Every JSON route answers with {"success": true, "data": ...} on success and
{"success": false, "error": ...} on failure.
"""

from typing import Any, Optional

from fastapi.responses import JSONResponse


def success_response(data: Any = None, message: Optional[str] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def error_response(
    status_code: int,
    error: str,
    code: Optional[str] = None,
    details: Any = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "error": error, "message": error}
    if code:
        content["code"] = code
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)
