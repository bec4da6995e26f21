"""
VESTRY - Access control and audit trail for multi-tenant organizations.
"""

__version__ = "1.0.0"
