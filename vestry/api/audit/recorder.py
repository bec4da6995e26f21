"""
VESTRY - Audit Recorder

Appends audit events to storage. Recording is best-effort: a failed
write is logged and reported as ``None``, never raised to the caller.
"""

import json
import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from vestry.api.audit.events import (
    AuditActor,
    AuditEvent,
    RequestContext,
    sanitize_for_audit,
)
from vestry.api.audit.taxonomy import (
    AuditAction,
    get_action_category,
    get_action_severity,
)
from vestry.api.db.models import AuditLog, utcnow
from vestry.api.exceptions import AuditWriteError


logger = logging.getLogger(__name__)


# ============================================================
# Change Detection
# ============================================================


def _normalize(value: Any) -> Any:
    """Reduce a value to plain JSON-like data so comparison is structural."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize(v) for v in value), key=str)
    return value


def _field(source: Any, name: str) -> Any:
    if source is None:
        return None
    if isinstance(source, dict):
        return source.get(name)
    return getattr(source, name, None)


def calculate_changes(
    before: Any,
    after: Any,
    fields: Iterable[str],
) -> Optional[Dict[str, Dict[str, Any]]]:
    """
    Field-level change map between two snapshots.

    ``before`` and ``after`` may be dicts or objects. Only fields whose
    values differ appear in the result; None means nothing changed.

        >>> calculate_changes({"role": "VIEWER"}, {"role": "EDITOR"}, ["role"])
        {'role': {'old': 'VIEWER', 'new': 'EDITOR'}}
    """
    changes: Dict[str, Dict[str, Any]] = {}
    for name in fields:
        old = _normalize(_field(before, name))
        new = _normalize(_field(after, name))
        if old != new:
            changes[name] = {"old": old, "new": new}
    return changes or None


def _jsonable(value: Any) -> Any:
    if value is None:
        return None
    return json.loads(json.dumps(_normalize(value), default=str))


# ============================================================
# Recorder
# ============================================================


class AuditRecorder:
    """
    Central audit recording service.

    Writes go through a session of their own, taken from
    ``session_factory``, so they never share a transaction with the
    business operation being audited.
    """

    diff = staticmethod(calculate_changes)

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def record(self, event: AuditEvent) -> Optional[AuditEvent]:
        """
        Validate, complete and persist an event.

        Returns the stored event (with id and timestamp) or None when the
        event is incomplete or storage failed.
        """
        missing = _missing_fields(event)
        if missing:
            logger.error(
                "Audit event rejected, missing fields %s (action=%r)",
                missing, getattr(event, "action", None),
            )
            return None

        action = AuditAction(event.action)
        completed = replace(
            event,
            action=action,
            category=event.category or get_action_category(action),
            severity=event.severity or get_action_severity(action),
            success=True if event.success is None else event.success,
            previous_value=_jsonable(sanitize_for_audit(event.previous_value)),
            new_value=_jsonable(sanitize_for_audit(event.new_value)),
            changes=_jsonable(sanitize_for_audit(event.changes)),
            metadata=_jsonable(sanitize_for_audit(event.metadata)),
        )

        try:
            persisted = await self._persist(completed)
        except AuditWriteError:
            logger.error(
                "Audit write failed: tenant=%s user=%s action=%s",
                event.actor.tenant_id, event.actor.user_id, action.value,
                exc_info=True,
            )
            return None

        logger.info(
            "AUDIT",
            extra={
                "audit_event": persisted.to_dict(),
                "event_hash": persisted.compute_hash(),
            },
        )
        return persisted

    async def record_from_request(
        self,
        identity: Any,
        request: Any,
        action: AuditAction,
        resource_type: str,
        **options: Any,
    ) -> Optional[AuditEvent]:
        """Record an event for the current caller and request."""
        context = RequestContext.from_request(request) if request is not None else None
        event = AuditEvent(
            actor=AuditActor.from_identity(identity),
            action=action,
            resource_type=resource_type,
            context=context,
            **options,
        )
        return await self.record(event)

    async def _persist(self, event: AuditEvent) -> AuditEvent:
        """Insert one row. Any storage error surfaces as AuditWriteError."""
        context = event.context
        if context is not None:
            context = RequestContext(
                ip_address=_fit("ip_address", context.ip_address),
                user_agent=_fit("user_agent", context.user_agent),
                endpoint=_fit("endpoint", context.endpoint),
                method=_fit("method", context.method),
            )
        stored = replace(
            event,
            event_id=uuid.uuid4(),
            created_at=utcnow(),
            resource_type=_fit("resource_type", event.resource_type),
            resource_id=_fit("resource_id", event.resource_id),
            resource_name=_fit("resource_name", event.resource_name),
            context=context,
        )
        context = stored.context or RequestContext()

        row = AuditLog(
            id=stored.event_id,
            tenant_id=stored.actor.tenant_id,
            user_id=stored.actor.user_id,
            user_email=stored.actor.email,
            user_name=stored.actor.name,
            user_role=str(getattr(stored.actor.role, "value", stored.actor.role)),
            action=stored.action.value,
            category=stored.category.value,
            severity=stored.severity.value,
            resource_type=stored.resource_type,
            resource_id=stored.resource_id,
            resource_name=stored.resource_name,
            previous_value=stored.previous_value,
            new_value=stored.new_value,
            changes=stored.changes,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            endpoint=context.endpoint,
            method=context.method,
            success=stored.success,
            error_message=stored.error_message,
            event_metadata=stored.metadata,
            created_at=stored.created_at,
        )

        try:
            async with self.session_factory() as session:
                session.add(row)
                await session.commit()
        except Exception as exc:
            raise AuditWriteError(
                "Failed to persist audit event",
                code="audit_write_failed",
                details={"action": stored.action.value},
            ) from exc

        return stored


def _fit(column: str, value: Any) -> Optional[str]:
    """Clip a string to the width of its ``audit_logs`` column."""
    if value is None:
        return None
    value = str(value)
    length = AuditLog.__table__.c[column].type.length
    return value[:length] if length else value


_REQUIRED_ACTOR_FIELDS = ("tenant_id", "user_id", "email", "name", "role")


def _missing_fields(event: AuditEvent) -> List[str]:
    missing: List[str] = []
    actor = getattr(event, "actor", None)
    if actor is None:
        missing.append("actor")
    else:
        missing.extend(f for f in _REQUIRED_ACTOR_FIELDS if not getattr(actor, f, None))

    try:
        AuditAction(event.action)
    except ValueError:
        missing.append("action")

    if not event.resource_type:
        missing.append("resource_type")
    return missing
