"""
VESTRY - Audit Event Model

Immutable records describing one audited occurrence.
"""

import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID

from vestry.api.audit.taxonomy import AuditAction, AuditCategory, AuditSeverity

if TYPE_CHECKING:
    from starlette.requests import Request

    from vestry.api.access.rbac import Identity


# ============================================================
# Audit Event Structure
# ============================================================


@dataclass(frozen=True)
class AuditActor:
    """Who performed the action, denormalized at write time."""

    tenant_id: UUID
    user_id: UUID
    email: str
    name: str
    role: str

    @classmethod
    def from_identity(cls, identity: "Identity") -> "AuditActor":
        return cls(
            tenant_id=identity.tenant_id,
            user_id=identity.user_id,
            email=identity.email,
            name=identity.name or identity.email,
            role=identity.role,
        )


@dataclass(frozen=True)
class RequestContext:
    """Technical context of the request that triggered the event."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    endpoint: Optional[str] = None
    method: Optional[str] = None

    @classmethod
    def from_request(cls, request: "Request") -> "RequestContext":
        endpoint = request.url.path
        if request.url.query:
            endpoint = f"{endpoint}?{request.url.query}"
        return cls(
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
            endpoint=endpoint,
            method=request.method,
        )


@dataclass(frozen=True)
class AuditEvent:
    """
    Complete audit event record.

    ``category``, ``severity`` and ``success`` may be left unset; the
    recorder fills them from the taxonomy before persisting. ``event_id``
    and ``created_at`` are assigned by storage.
    """

    actor: AuditActor
    action: AuditAction
    resource_type: str
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    previous_value: Optional[Any] = None
    new_value: Optional[Any] = None
    changes: Optional[Dict[str, Dict[str, Any]]] = None
    success: Optional[bool] = None
    error_message: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    context: Optional[RequestContext] = None
    category: Optional[AuditCategory] = None
    severity: Optional[AuditSeverity] = None
    event_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and export."""
        return {
            "event_id": str(self.event_id) if self.event_id else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "tenant_id": str(self.actor.tenant_id),
            "actor": {
                "user_id": str(self.actor.user_id),
                "email": self.actor.email,
                "name": self.actor.name,
                "role": self.actor.role,
            },
            "action": _enum_value(self.action),
            "category": _enum_value(self.category),
            "severity": _enum_value(self.severity),
            "resource": {
                "type": self.resource_type,
                "id": self.resource_id,
                "name": self.resource_name,
            },
            "previous_value": self.previous_value,
            "new_value": self.new_value,
            "changes": self.changes,
            "success": self.success,
            "error_message": self.error_message,
            "metadata": self.metadata,
            "context": asdict(self.context) if self.context else None,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def compute_hash(self) -> str:
        """Compute SHA256 hash for integrity verification."""
        created = self.created_at.isoformat() if self.created_at else ""
        content = f"{self.event_id}{created}{self.actor.user_id}{_enum_value(self.action)}"
        return hashlib.sha256(content.encode()).hexdigest()


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


# ============================================================
# Redaction
# ============================================================


SENSITIVE_FIELDS = frozenset({
    "password", "password_hash", "new_password", "current_password",
    "secret", "token", "access_token", "refresh_token", "api_key",
    "private_key",
})


def sanitize_for_audit(data: Any) -> Any:
    """Remove sensitive fields from data before logging."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_FIELDS else sanitize_for_audit(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_audit(item) for item in data]
    else:
        return data


# ============================================================
# Storage Conversion
# ============================================================


def event_from_row(row: Any) -> AuditEvent:
    """Rebuild an AuditEvent from a stored ``audit_logs`` row."""
    context = None
    if any((row.ip_address, row.user_agent, row.endpoint, row.method)):
        context = RequestContext(
            ip_address=row.ip_address,
            user_agent=row.user_agent,
            endpoint=row.endpoint,
            method=row.method,
        )

    return AuditEvent(
        actor=AuditActor(
            tenant_id=row.tenant_id,
            user_id=row.user_id,
            email=row.user_email,
            name=row.user_name,
            role=row.user_role,
        ),
        action=AuditAction(row.action),
        resource_type=row.resource_type,
        resource_id=row.resource_id,
        resource_name=row.resource_name,
        previous_value=row.previous_value,
        new_value=row.new_value,
        changes=row.changes,
        success=row.success,
        error_message=row.error_message,
        metadata=row.event_metadata,
        context=context,
        category=AuditCategory(row.category),
        severity=AuditSeverity(row.severity),
        event_id=row.id,
        created_at=row.created_at,
    )
