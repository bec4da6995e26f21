"""
VESTRY - Audit Trail

Action taxonomy, event model, recorder and query service.
"""

from vestry.api.audit.taxonomy import (
    AuditAction,
    AuditCategory,
    AuditSeverity,
    get_action_category,
    get_action_severity,
)
from vestry.api.audit.events import (
    AuditActor,
    AuditEvent,
    RequestContext,
    sanitize_for_audit,
)
from vestry.api.audit.recorder import AuditRecorder, calculate_changes

__all__ = [
    "AuditAction",
    "AuditCategory",
    "AuditSeverity",
    "get_action_category",
    "get_action_severity",
    "AuditActor",
    "AuditEvent",
    "RequestContext",
    "sanitize_for_audit",
    "AuditRecorder",
    "calculate_changes",
]
