"""
Data Models Package

This package contains all Pydantic models used in AFACTURA.
All data flowing through the system must conform to these schemas.
"""

from afactura.models.invoice import (
    Client,
    CompanyProfile,
    DocumentType,
    Invoice,
    InvoiceDraft,
    InvoiceItem,
    InvoiceStatus,
    InvoiceTotals,
    InvoiceTrailEntry,
    PaymentMethod,
    TaxRate,
    calculate_totals,
    can_transition,
)
from afactura.models.audit import (
    AuditAction,
    AuditLogEntry,
    ChainVerification,
    compute_entry_hash,
    verify_chain,
)
from afactura.models.settings import (
    InvoiceNumbering,
    InvoiceSeriesSetting,
    ProfileSetting,
    Setting,
    SettingKey,
    parse_setting,
    setting_to_record,
)
from afactura.models.snapshot import (
    SNAPSHOT_VERSION,
    Snapshot,
    SnapshotData,
)
from afactura.models.validation import (
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Invoice models
    "Client",
    "CompanyProfile",
    "DocumentType",
    "Invoice",
    "InvoiceDraft",
    "InvoiceItem",
    "InvoiceStatus",
    "InvoiceTotals",
    "InvoiceTrailEntry",
    "PaymentMethod",
    "TaxRate",
    "calculate_totals",
    "can_transition",
    # Audit models
    "AuditAction",
    "AuditLogEntry",
    "ChainVerification",
    "compute_entry_hash",
    "verify_chain",
    # Settings
    "InvoiceNumbering",
    "InvoiceSeriesSetting",
    "ProfileSetting",
    "Setting",
    "SettingKey",
    "parse_setting",
    "setting_to_record",
    # Snapshot
    "SNAPSHOT_VERSION",
    "Snapshot",
    "SnapshotData",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
