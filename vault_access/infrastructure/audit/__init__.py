"""
Audit logging infrastructure for access grants and share links.
"""

from vault_access.infrastructure.audit.audit_logger import AuditLogger

__all__ = ["AuditLogger"]
