"""Audit trail package."""

from afactura.audit.recorder import AuditTrailRecorder

__all__ = ["AuditTrailRecorder"]
