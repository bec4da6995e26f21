"""Database module."""

from vestry.api.db.session import get_db, get_audit_session_maker, init_db, close_db
from vestry.api.db.models import Base, User, AuditLog

__all__ = ["get_db", "get_audit_session_maker", "init_db", "close_db", "Base", "User", "AuditLog"]
