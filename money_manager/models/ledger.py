"""
Core Ledger Models for Money Manager

These models define the records that flow between the domain service,
the storage layer and backup files:
1. Person - someone money is lent to or borrowed from
2. Transaction - one movement of money with a person
3. PersonSummary / LedgerTotals - derived views, never persisted

DESIGN DECISION: Models only coerce types. They do NOT validate business
rules (non-empty names, numeric amounts). That is the validator's job, so
that restoring an old backup never fails on a rule added later.

Records use the camelCase keys of the backup file format (personId,
imageUri, createdAt). Python code uses snake_case attributes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from money_manager.config import get_settings


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with milliseconds and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 date or timestamp, accepting a trailing Z."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a transaction.

    Amounts are always positive; the direction lives here.
    """
    CREDIT = "credit"  # Money given to the person (increases balance)
    DEBIT = "debit"    # Money taken from the person (decreases balance)


# =============================================================================
# PERSISTED RECORDS
# =============================================================================

class LedgerRecord(BaseModel):
    """Shared record conversion for persisted entities."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Flat camelCase record used by storage and backup files."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]):
        """Inverse of to_record()."""
        return cls.model_validate(record)


class Person(LedgerRecord):
    """
    A person money is exchanged with.

    Created with an id generated by the ledger service and replaced as a
    whole on edit.
    """

    id: str = Field(
        ...,
        description="Unique person ID (immutable)"
    )
    name: str = Field(
        ...,
        description="Display name"
    )
    phone: str = Field(
        default="",
        description="Phone number"
    )
    email: str = Field(
        default="",
        description="Email address"
    )
    image_uri: Optional[str] = Field(
        default=None,
        description="Reference to a locally stored photo"
    )
    created_at: str = Field(
        default_factory=utc_now_iso,
        description="When the person was added (ISO-8601)"
    )

    @field_validator('phone', 'email', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        """Storage keeps missing contact details as NULL."""
        return "" if v is None else v


class Transaction(LedgerRecord):
    """
    Money given to or taken from one person.

    `date` is when the money moved and can be edited by the user.
    `created_at` is when the record was entered and never changes.
    """

    id: str = Field(
        ...,
        description="Unique transaction ID"
    )
    person_id: str = Field(
        ...,
        description="ID of the person this transaction belongs to"
    )
    amount: float = Field(
        ...,
        description="Positive magnitude; direction is given by type"
    )
    type: TransactionType = Field(
        ...,
        description="credit (given) or debit (taken)"
    )
    description: str = Field(
        default="",
        description="Free-text note"
    )
    date: str = Field(
        default_factory=utc_now_iso,
        description="When the transaction happened (ISO-8601)"
    )
    created_at: str = Field(
        default_factory=utc_now_iso,
        description="When the record was created (ISO-8601)"
    )

    @field_validator('description', mode='before')
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def signed_amount(self) -> float:
        """Amount with the sign implied by the transaction type."""
        if self.type == TransactionType.CREDIT:
            return self.amount
        return -self.amount

    def formatted_amount(self, currency_symbol: Optional[str] = None) -> str:
        if currency_symbol is None:
            currency_symbol = get_settings().app.currency_symbol
        return f"{currency_symbol}{self.amount:.2f}"

    def formatted_date(self) -> str:
        """Transaction date as DD/MM/YYYY."""
        return parse_iso(self.date).strftime("%d/%m/%Y")


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class PersonSummary(BaseModel):
    """
    A person together with statistics over their transactions.

    This is what a person list shows: who, how much was given, how much
    was taken, and the resulting balance.
    """

    person: Person
    given_total: float = Field(
        default=0.0,
        description="Sum of credit amounts"
    )
    taken_total: float = Field(
        default=0.0,
        description="Sum of debit amounts"
    )
    balance: float = Field(
        default=0.0,
        description="given_total - taken_total"
    )
    last_transaction_date: Optional[str] = Field(
        default=None,
        description="Latest transaction date, None without transactions"
    )
    transaction_count: int = Field(
        default=0,
        ge=0
    )


class LedgerTotals(BaseModel):
    """Totals across every person in the ledger."""

    total_balance: float = 0.0
    total_given: float = 0.0
    total_taken: float = 0.0
    person_count: int = Field(default=0, ge=0)
