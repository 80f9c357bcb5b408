"""
Audit log endpoints for API v1.

Lists the create, update and delete actions recorded by the services.
Any authenticated user may read the log.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from elibrary_api.app.api.deps import get_audit_service
from elibrary_api.app.core.security import get_current_user
from elibrary_api.app.schemas.common import ok
from elibrary_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting user ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (book, user)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, delete)"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of logs to return"),
    offset: int = Query(0, ge=0, description="Number of logs to skip"),
    current_user: dict = Depends(get_current_user),
    service: AuditService = Depends(get_audit_service),
) -> dict:
    """Retrieve audit logs, newest first."""
    logs = await service.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        limit=limit,
        offset=offset,
    )
    return ok("Audit logs retrieved successfully", logs)
