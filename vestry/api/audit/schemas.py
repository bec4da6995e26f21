"""
Audit Schemas

Pydantic models for audit log listing, statistics and export.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


# ==================== Listing ====================


class AuditLogResponse(BaseModel):
    """One stored audit event."""

    id: UUID
    tenant_id: UUID
    user_id: UUID
    user_email: str
    user_name: str
    user_role: str
    action: str
    category: str
    severity: str
    resource_type: str
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    previous_value: Optional[Any] = None
    new_value: Optional[Any] = None
    changes: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None
    success: bool = True
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("event_metadata", "metadata"),
    )
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    """Paginated list of audit events, newest first."""

    items: List[AuditLogResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# ==================== Statistics ====================


class UserActivityCount(BaseModel):
    """Event count for one actor."""

    user_id: UUID
    user_email: str
    user_name: str
    count: int


class DailyCount(BaseModel):
    """Event count for one calendar day (UTC)."""

    date: str
    count: int


class AuditStatsResponse(BaseModel):
    """Aggregates over a trailing window."""

    total_events: int = 0
    by_category: Dict[str, int] = {}
    by_user: List[UserActivityCount] = []
    by_day: List[DailyCount] = []
    period_days: int
    period_start: datetime
    period_end: datetime
