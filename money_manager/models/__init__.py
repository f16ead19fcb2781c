"""
Data Models Package

This package contains all Pydantic models used in Money Manager.
All data flowing through the system must conform to these schemas.
"""

from money_manager.models.ledger import (
    LedgerTotals,
    Person,
    PersonSummary,
    Transaction,
    TransactionType,
    utc_now_iso,
)
from money_manager.models.backup import (
    BACKUP_FORMAT_VERSION,
    BackupInfo,
    BackupResult,
    RestoreResult,
    RestoreState,
    Snapshot,
)
from money_manager.models.validation import ValidationIssue, ValidationResult
from money_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "LedgerTotals",
    "Person",
    "PersonSummary",
    "Transaction",
    "TransactionType",
    "utc_now_iso",
    # Backup models
    "BACKUP_FORMAT_VERSION",
    "BackupInfo",
    "BackupResult",
    "RestoreResult",
    "RestoreState",
    "Snapshot",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
