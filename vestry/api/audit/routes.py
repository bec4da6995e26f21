"""
Audit Routes

API endpoints for reading, summarizing and exporting the tenant's
audit trail.
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vestry.api.access.catalog import Permission
from vestry.api.access.rbac import Identity, require_permission
from vestry.api.audit.recorder import AuditRecorder
from vestry.api.audit.schemas import (
    AuditLogListResponse,
    AuditLogResponse,
    AuditStatsResponse,
)
from vestry.api.audit.service import AuditQueryService
from vestry.api.audit.taxonomy import AuditAction, AuditCategory, AuditSeverity
from vestry.api.config import settings
from vestry.api.db.session import get_db
from vestry.api.dependencies import get_audit_recorder, get_optional_identity


router = APIRouter()


@router.get(
    "/logs",
    response_model=AuditLogListResponse,
    summary="List audit events",
)
@require_permission(Permission.AUDIT_VIEW)
async def list_audit_logs(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.AUDIT_PAGE_SIZE_DEFAULT, ge=1, le=settings.AUDIT_PAGE_SIZE_MAX),
    user_id: Optional[UUID] = Query(None, description="Filter by actor"),
    action: Optional[AuditAction] = Query(None),
    category: Optional[AuditCategory] = Query(None),
    resource_type: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    severity: Optional[AuditSeverity] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
) -> AuditLogListResponse:
    """
    Get paginated audit events of the caller's tenant, newest first.

    Supports filtering by actor, action, category, resource, severity
    and date range.
    """
    service = AuditQueryService(db)
    events, total = await service.list_events(
        identity.tenant_id,
        page=page,
        page_size=page_size,
        user_id=user_id,
        action=action,
        category=category,
        resource_type=resource_type,
        resource_id=resource_id,
        severity=severity,
        start_date=start_date,
        end_date=end_date,
    )

    total_pages = math.ceil(total / page_size) if total > 0 else 1

    return AuditLogListResponse(
        items=events,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
    )


@router.get(
    "/logs/{event_id}",
    response_model=AuditLogResponse,
    summary="Get one audit event",
)
@require_permission(Permission.AUDIT_VIEW)
async def get_audit_log(
    event_id: UUID,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> AuditLogResponse:
    service = AuditQueryService(db)
    return await service.get_event(identity.tenant_id, event_id)


@router.get(
    "/stats",
    response_model=AuditStatsResponse,
    summary="Audit statistics",
)
@require_permission(Permission.AUDIT_VIEW)
async def get_audit_stats(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    days: int = Query(settings.AUDIT_STATS_DEFAULT_DAYS, ge=1, le=365),
) -> AuditStatsResponse:
    """Counts by category, most active users and per-day totals."""
    service = AuditQueryService(db)
    return await service.get_stats(identity.tenant_id, days=days)


@router.get(
    "/export",
    summary="Export audit events",
)
@require_permission(Permission.AUDIT_EXPORT)
async def export_audit_logs(
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    start_date: Optional[datetime] = Query(None, description="Defaults to the stats window"),
    end_date: Optional[datetime] = Query(None, description="Defaults to now"),
) -> Dict[str, Any]:
    """
    Export audit events as JSON with an integrity hash.

    The export itself is recorded in the audit trail.
    """
    end_date = end_date or datetime.now(timezone.utc)
    start_date = start_date or end_date - timedelta(days=settings.AUDIT_STATS_DEFAULT_DAYS)

    service = AuditQueryService(db)
    export_data = await service.export(identity.tenant_id, start_date, end_date)

    await recorder.record_from_request(
        identity,
        request,
        AuditAction.EXPORT_DATA,
        "audit_log",
        metadata={
            "period_start": export_data["period_start"],
            "period_end": export_data["period_end"],
            "event_count": export_data["event_count"],
            "integrity_hash": export_data.get("integrity_hash"),
        },
    )
    return export_data
