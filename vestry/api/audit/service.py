"""
Audit Query Service

Read side of the audit trail: filtered listing, statistics and export.
Nothing here mutates stored events except the operator-invoked purge.
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vestry.api.audit.events import event_from_row
from vestry.api.audit.schemas import (
    AuditLogResponse,
    AuditStatsResponse,
    DailyCount,
    UserActivityCount,
)
from vestry.api.config import settings
from vestry.api.db.models import AuditLog
from vestry.api.exceptions import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC so they compare with stored timestamps."""
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


class AuditQueryService:
    """Service for reading the audit trail of one tenant at a time."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    # ==================== Listing ====================

    def _filtered(
        self,
        tenant_id: UUID,
        user_id: Optional[UUID] = None,
        action: Optional[str] = None,
        category: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        severity: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        query = select(AuditLog).where(AuditLog.tenant_id == tenant_id)

        if user_id:
            query = query.where(AuditLog.user_id == user_id)
        if action:
            query = query.where(AuditLog.action == _value(action))
        if category:
            query = query.where(AuditLog.category == _value(category))
        if resource_type:
            query = query.where(AuditLog.resource_type == resource_type)
        if resource_id:
            query = query.where(AuditLog.resource_id == str(resource_id))
        if severity:
            query = query.where(AuditLog.severity == _value(severity))
        if start_date:
            query = query.where(AuditLog.created_at >= start_date)
        if end_date:
            query = query.where(AuditLog.created_at <= end_date)

        return query

    async def list_events(
        self,
        tenant_id: UUID,
        page: int = 1,
        page_size: Optional[int] = None,
        **filters: Any,
    ) -> Tuple[List[AuditLogResponse], int]:
        """
        Get paginated audit events with filters, newest first.

        Filters: user_id, action, category, resource_type, resource_id,
        severity, start_date, end_date.
        """
        page = max(page, 1)
        page_size = page_size or settings.AUDIT_PAGE_SIZE_DEFAULT
        page_size = min(max(page_size, 1), settings.AUDIT_PAGE_SIZE_MAX)

        query = self._filtered(tenant_id, **filters)

        # Get total count
        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        # Apply pagination
        offset = (page - 1) * page_size
        query = query.order_by(desc(AuditLog.created_at), desc(AuditLog.id))
        query = query.limit(page_size).offset(offset)

        result = await self.db.execute(query)
        events = [AuditLogResponse.model_validate(row) for row in result.scalars().all()]
        return events, total

    async def get_event(self, tenant_id: UUID, event_id: UUID) -> AuditLogResponse:
        """Get one event of the tenant."""
        row = await self.db.scalar(
            select(AuditLog).where(
                AuditLog.tenant_id == tenant_id,
                AuditLog.id == event_id,
            )
        )
        if row is None:
            raise NotFoundError("Audit event not found", code="audit_event_not_found")
        return AuditLogResponse.model_validate(row)

    # ==================== Statistics ====================

    async def get_stats(
        self,
        tenant_id: UUID,
        days: Optional[int] = None,
        top_users: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> AuditStatsResponse:
        """Counts by category, top actors and calendar day over the last ``days``."""
        days = days or settings.AUDIT_STATS_DEFAULT_DAYS
        top_users = top_users or settings.AUDIT_STATS_TOP_USERS
        period_end = as_utc(now) or datetime.now(timezone.utc)
        period_start = period_end - timedelta(days=days)

        in_window = (
            AuditLog.tenant_id == tenant_id,
            AuditLog.created_at >= period_start,
            AuditLog.created_at <= period_end,
        )

        total = await self.db.scalar(
            select(func.count(AuditLog.id)).where(*in_window)
        )

        result = await self.db.execute(
            select(AuditLog.category, func.count(AuditLog.id))
            .where(*in_window)
            .group_by(AuditLog.category)
        )
        by_category = {category: count for category, count in result.all()}

        event_count = func.count(AuditLog.id).label("event_count")
        result = await self.db.execute(
            select(
                AuditLog.user_id,
                func.max(AuditLog.user_email),
                func.max(AuditLog.user_name),
                event_count,
            )
            .where(*in_window)
            .group_by(AuditLog.user_id)
            .order_by(desc(event_count))
            .limit(top_users)
        )
        by_user = [
            UserActivityCount(user_id=user_id, user_email=email, user_name=name, count=count)
            for user_id, email, name, count in result.all()
        ]

        day = func.date(AuditLog.created_at).label("day")
        result = await self.db.execute(
            select(day, func.count(AuditLog.id))
            .where(*in_window)
            .group_by(day)
            .order_by(day)
        )
        # date() yields a date on PostgreSQL and a string on SQLite
        by_day = [DailyCount(date=str(d), count=count) for d, count in result.all()]

        return AuditStatsResponse(
            total_events=total or 0,
            by_category=by_category,
            by_user=by_user,
            by_day=by_day,
            period_days=days,
            period_start=period_start,
            period_end=period_end,
        )

    # ==================== Export ====================

    async def export(
        self,
        tenant_id: UUID,
        start_time: datetime,
        end_time: datetime,
        include_hash: bool = True,
        **filters: Any,
    ) -> Dict[str, Any]:
        """
        Export audit events for compliance.

        Events are listed oldest first and capped at AUDIT_EXPORT_MAX_EVENTS;
        ``truncated`` tells whether the cap was hit.
        """
        start_time, end_time = as_utc(start_time), as_utc(end_time)
        if start_time > end_time:
            raise BadRequestError("Export start must not be after its end", code="invalid_period")

        limit = settings.AUDIT_EXPORT_MAX_EVENTS
        query = self._filtered(tenant_id, start_date=start_time, end_date=end_time, **filters)

        total = await self.db.scalar(
            select(func.count()).select_from(query.subquery())
        ) or 0
        result = await self.db.execute(
            query.order_by(AuditLog.created_at, AuditLog.id).limit(limit)
        )

        events = []
        for row in result.scalars().all():
            event = event_from_row(row)
            data = event.to_dict()
            data["hash"] = event.compute_hash()
            events.append(data)

        export_data = {
            "export_timestamp": datetime.now(timezone.utc).isoformat(),
            "tenant_id": str(tenant_id),
            "period_start": start_time.isoformat(),
            "period_end": end_time.isoformat(),
            "event_count": len(events),
            "truncated": total > len(events),
            "events": events,
        }
        if include_hash:
            content = json.dumps(export_data, sort_keys=True, default=str)
            export_data["integrity_hash"] = hashlib.sha256(content.encode()).hexdigest()

        return export_data

    # ==================== Retention ====================

    async def purge_expired(self, before: Optional[datetime] = None) -> int:
        """
        Delete events older than ``before`` across all tenants.

        Defaults to now minus AUDIT_RETENTION_DAYS; with no retention
        configured and no explicit cutoff nothing is deleted.
        """
        if before is None:
            if settings.AUDIT_RETENTION_DAYS is None:
                return 0
            before = datetime.now(timezone.utc) - timedelta(days=settings.AUDIT_RETENTION_DAYS)
        else:
            before = as_utc(before)

        result = await self.db.execute(
            delete(AuditLog).where(AuditLog.created_at < before)
        )
        deleted = result.rowcount or 0
        logger.info("Purged %d audit events created before %s", deleted, before.isoformat())
        return deleted
