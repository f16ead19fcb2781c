"""
Audit Models for Money Manager

Every change to the ledger produces an audit event in the structured log.
This provides:
1. Traceability of edits, deletions and restores
2. Debugging information when a write fails
3. A record of destructive actions the user confirmed

DESIGN DECISION: Audit events are log records only. They are never stored
in the ledger database and never included in backups.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Persons
    PERSON_SAVED = "person_saved"
    PERSON_DELETED = "person_deleted"

    # Transactions
    TRANSACTION_SAVED = "transaction_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    PERSON_TRANSACTIONS_DELETED = "person_transactions_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Bulk operations
    DATA_CLEARED = "data_cleared"
    BACKUP_CREATED = "backup_created"
    BACKUP_SHARED = "backup_shared"
    BACKUP_FAILED = "backup_failed"
    RESTORE_COMPLETED = "restore_completed"
    RESTORE_FAILED = "restore_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'person', 'transaction', 'backup')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.person_saved(person_id="...", name="Alice")
        await audit_logger.log(event)
    """

    @staticmethod
    def person_saved(person_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_SAVED,
            entity_type="person",
            entity_id=person_id,
            description="Person saved",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def person_deleted(person_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_DELETED,
            entity_type="person",
            entity_id=person_id,
            description="Person and their transactions deleted",
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        person_id: str,
        amount: float,
        transaction_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction saved: {transaction_type} {amount:.2f}",
            details={"person_id": person_id, "amount": amount, "type": transaction_type},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def person_transactions_deleted(person_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_TRANSACTIONS_DELETED,
            entity_type="person",
            entity_id=person_id,
            description="All transactions of person deleted",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(entity_type: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"Validation failed with {len(issues)} issue(s)",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def data_cleared() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            severity=AuditSeverity.WARNING,
            description="All persons and transactions cleared",
            is_user_action=True,
        )

    @staticmethod
    def backup_created(file_path: str, person_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            entity_type="backup",
            entity_id=file_path,
            description="Backup file written",
            details={
                "person_count": person_count,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def backup_shared(file_path: str, status: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_SHARED,
            entity_type="backup",
            entity_id=file_path,
            description=f"Backup handed to share target ({status})",
            details={"status": status},
            is_user_action=True,
        )

    @staticmethod
    def backup_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="backup",
            description="Backup failed",
            error_message=error_message,
        )

    @staticmethod
    def restore_completed(file_path: str, person_count: int, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESTORE_COMPLETED,
            severity=AuditSeverity.WARNING,
            entity_type="backup",
            entity_id=file_path,
            description="Ledger replaced from backup file",
            details={
                "person_count": person_count,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def restore_failed(file_path: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESTORE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="backup",
            entity_id=file_path,
            description="Restore failed; existing data left unchanged",
            error_message=error_message,
            is_user_action=True,
        )
