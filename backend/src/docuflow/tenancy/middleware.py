"""Middleware for tenant context extraction.

Puts the caller's org_id on request.state so logging can tag every line
with the tenant. Authentication itself happens in auth.dependencies;
this middleware never rejects a request.
"""

from typing import Callable
from uuid import UUID

import jwt
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..auth.jwt import decode_token


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Best-effort extraction of org_id from the bearer token."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.org_id = None

        auth_header = request.headers.get("Authorization")
        if auth_header:
            parts = auth_header.split()
            if len(parts) == 2 and parts[0].lower() == "bearer":
                try:
                    org_id_str = decode_token(parts[1]).get("org_id")
                    if org_id_str:
                        request.state.org_id = UUID(org_id_str)
                except (jwt.InvalidTokenError, ValueError):
                    # get_current_user reports the failure
                    pass

        return await call_next(request)
