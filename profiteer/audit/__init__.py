"""Audit logging package."""

from profiteer.audit.diagnostics import AnomalyLog
from profiteer.audit.logger import AuditLogger, create_correlation_id

__all__ = ["AnomalyLog", "AuditLogger", "create_correlation_id"]
