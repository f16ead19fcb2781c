"""
Backup Models for Money Manager

A Snapshot is the complete contents of the ledger at one point in time.
It is what gets written to (and read back from) a backup file:

    {
      "version": "1.0.0",
      "exportDate": "<ISO-8601 timestamp>",
      "persons": [...],
      "transactions": [...]
    }
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from money_manager.models.ledger import Person, Transaction, utc_now_iso


BACKUP_FORMAT_VERSION = "1.0.0"


class Snapshot(BaseModel):
    """Full export of all persons and transactions."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    version: str = Field(
        default=BACKUP_FORMAT_VERSION,
        description="Backup format version"
    )
    export_date: str = Field(
        default_factory=utc_now_iso,
        description="When the snapshot was taken (ISO-8601)"
    )
    persons: list[Person] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Convert to the JSON document written to backup files."""
        return {
            "version": self.version,
            "exportDate": self.export_date,
            "persons": [person.to_record() for person in self.persons],
            "transactions": [txn.to_record() for txn in self.transactions],
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Snapshot":
        return cls.model_validate(document)


class RestoreState(str, Enum):
    """
    Restore progress.

    IDLE -> FILE_SELECTED -> CONFIRMED -> IMPORTING -> SUCCESS | FAILED

    CRITICAL: CONFIRMED is only reached by explicit user action,
    because IMPORTING discards all existing data first.
    """
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    CONFIRMED = "confirmed"
    IMPORTING = "importing"
    SUCCESS = "success"
    FAILED = "failed"


class BackupResult(BaseModel):
    """Outcome of writing (and optionally sharing) a backup file."""

    success: bool
    file_path: Optional[str] = None
    snapshot: Optional[Snapshot] = None
    share_status: Optional[str] = None
    error: Optional[str] = None


class RestoreResult(BaseModel):
    """Outcome of restoring from a backup file."""

    success: bool
    snapshot: Optional[Snapshot] = None
    error: Optional[str] = None

    @property
    def person_count(self) -> int:
        return len(self.snapshot.persons) if self.snapshot else 0

    @property
    def transaction_count(self) -> int:
        return len(self.snapshot.transactions) if self.snapshot else 0


class BackupInfo(BaseModel):
    """What a backup taken right now would contain."""

    person_count: int = Field(ge=0)
    transaction_count: int = Field(ge=0)
    last_export: str
    version: str
