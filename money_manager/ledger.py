"""
Ledger Service

This module is the only thing the presentation layer talks to.
It converts storage records to Person/Transaction models, validates
user input before any write, and derives balances.

DESIGN DECISION: Balances are computed on read, never stored.
A person's balance is simply

    sum(credit amounts) - sum(debit amounts)

over their transactions, so it can never drift out of sync with them.
"""

import secrets
import string
import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

import structlog

from money_manager.audit import AuditLogger
from money_manager.models.audit import AuditEventBuilder
from money_manager.models.backup import Snapshot
from money_manager.models.ledger import (
    LedgerTotals,
    Person,
    PersonSummary,
    Transaction,
    TransactionType,
    parse_iso,
)
from money_manager.services.storage import LedgerStorageInterface
from money_manager.validation import LedgerValidationError, LedgerValidator


ID_ALPHABET = string.digits + string.ascii_lowercase
ID_SUFFIX_LENGTH = 9


def generate_id() -> str:
    """
    Millisecond timestamp followed by 9 random base-36 characters.

    Unique for all practical purposes within one installation; there is
    no sync, so global uniqueness is not needed.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(ID_ALPHABET) for _ in range(ID_SUFFIX_LENGTH))
    return f"{millis}{suffix}"


def _date_sort_key(value: str) -> datetime:
    """Sort key for ISO dates; date-only values are treated as UTC midnight."""
    try:
        parsed = parse_iso(value)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def given_total(transactions: Iterable[Transaction]) -> float:
    """Sum of credit amounts (money given)."""
    return sum(t.amount for t in transactions if t.type == TransactionType.CREDIT)


def taken_total(transactions: Iterable[Transaction]) -> float:
    """Sum of debit amounts (money taken)."""
    return sum(t.amount for t in transactions if t.type == TransactionType.DEBIT)


def compute_balance(transactions: Iterable[Transaction]) -> float:
    """Credits minus debits. An empty list has balance 0."""
    transactions = list(transactions)
    return given_total(transactions) - taken_total(transactions)


def summarize_person(person: Person, transactions: list[Transaction]) -> PersonSummary:
    given = given_total(transactions)
    taken = taken_total(transactions)
    last_date = (
        max((t.date for t in transactions), key=_date_sort_key)
        if transactions else None
    )
    return PersonSummary(
        person=person,
        given_total=given,
        taken_total=taken,
        balance=given - taken,
        last_transaction_date=last_date,
        transaction_count=len(transactions),
    )


def compute_totals(summaries: Iterable[PersonSummary]) -> LedgerTotals:
    """Add up balances, given and taken amounts across persons."""
    totals = LedgerTotals()
    for summary in summaries:
        totals.total_balance += summary.balance
        totals.total_given += summary.given_total
        totals.total_taken += summary.taken_total
        totals.person_count += 1
    return totals


class LedgerService:
    """
    Typed façade over ledger storage.

    Operations mirror the storage interface one-to-one but accept and
    return models. Writes are validated first; invalid input raises
    LedgerValidationError and never reaches storage.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> LedgerStorageInterface:
        return self._storage

    # Re-exported so callers holding a service need no other import
    generate_id = staticmethod(generate_id)
    compute_balance = staticmethod(compute_balance)
    summarize_person = staticmethod(summarize_person)
    compute_totals = staticmethod(compute_totals)

    async def initialize(self) -> None:
        await self._storage.initialize()

    async def close(self) -> None:
        await self._storage.close()

    async def _reject(self, result) -> None:
        await self._audit_logger.log_validation_failed(
            entity_type=result.entity_type,
            issues=[issue.model_dump() for issue in result.issues],
        )
        raise LedgerValidationError(result)

    # -------------------------------------------------------------------------
    # Persons
    # -------------------------------------------------------------------------

    async def list_persons(self) -> list[Person]:
        records = await self._storage.list_persons()
        return [Person.from_record(record) for record in records]

    async def create_person(
        self,
        name: str,
        phone: str = "",
        email: str = "",
        image_uri: Optional[str] = None,
    ) -> Person:
        """Validate form input, then add a new person with a fresh id."""
        result = self._validator.validate_person_input(name, email)
        if result.has_errors:
            await self._reject(result)

        person = Person(
            id=generate_id(),
            name=name.strip(),
            phone=(phone or "").strip(),
            email=(email or "").strip(),
            image_uri=image_uri,
        )
        return await self.save_person(person)

    async def save_person(self, person: Person) -> Person:
        """Insert or fully replace a person."""
        result = self._validator.validate_person(person)
        if result.has_errors:
            await self._reject(result)

        await self._storage.upsert_person(person.to_record())
        await self._audit_logger.log_person_saved(person_id=person.id, name=person.name)
        return person

    async def delete_person(self, person_id: str) -> bool:
        """Delete a person together with all of their transactions."""
        deleted = await self._storage.delete_person(person_id)
        if deleted:
            await self._audit_logger.log_person_deleted(person_id=person_id)
        else:
            self._logger.info("delete_person_missing", person_id=person_id)
        return deleted

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        records = await self._storage.list_transactions()
        return [Transaction.from_record(record) for record in records]

    async def list_transactions_for_person(self, person_id: str) -> list[Transaction]:
        records = await self._storage.list_transactions_for_person(person_id)
        return [Transaction.from_record(record) for record in records]

    async def create_transaction(
        self,
        person_id: str,
        amount: Union[str, float, int],
        transaction_type: Union[str, TransactionType],
        description: str = "",
        date: Optional[str] = None,
    ) -> Transaction:
        """
        Validate form input, then add a new transaction with a fresh id.

        `amount` may be the raw text the user typed; anything that does
        not parse as a number is rejected.
        """
        result = self._validator.validate_transaction_input(person_id, amount, transaction_type)
        if result.has_errors:
            await self._reject(result)

        amount_value, _ = self._validator.parse_amount(amount)
        fields = {
            "id": generate_id(),
            "person_id": person_id,
            "amount": amount_value,
            "type": TransactionType(transaction_type),
            "description": (description or "").strip(),
        }
        if date:
            fields["date"] = date
        return await self.save_transaction(Transaction(**fields))

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert or fully replace a transaction.

        Raises StorageIOError if the person does not exist.
        """
        result = self._validator.validate_transaction(transaction)
        if result.has_errors:
            await self._reject(result)

        await self._storage.upsert_transaction(transaction.to_record())
        await self._audit_logger.log_transaction_saved(
            transaction_id=transaction.id,
            person_id=transaction.person_id,
            amount=transaction.amount,
            transaction_type=transaction.type.value,
        )
        return transaction

    async def delete_transaction(self, transaction_id: str) -> bool:
        deleted = await self._storage.delete_transaction(transaction_id)
        if deleted:
            await self._audit_logger.log_transaction_deleted(transaction_id=transaction_id)
        return deleted

    async def delete_transactions_for_person(self, person_id: str) -> int:
        count = await self._storage.delete_transactions_for_person(person_id)
        await self._audit_logger.log(
            AuditEventBuilder.person_transactions_deleted(person_id=person_id)
        )
        return count

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    async def clear_all(self) -> None:
        """Delete every person and transaction."""
        await self._storage.clear_all()
        await self._audit_logger.log(AuditEventBuilder.data_cleared())

    async def export_snapshot(self) -> Snapshot:
        document = await self._storage.export_snapshot()
        return Snapshot.from_document(document)

    async def import_snapshot(self, snapshot: Snapshot) -> None:
        """
        Replace the whole ledger with the snapshot, all or nothing.

        Raises LedgerValidationError, before storage is touched, if any
        record breaks the person or transaction rules.
        """
        result = self._validator.validate_snapshot(snapshot)
        if result.has_errors:
            await self._reject(result)

        await self._storage.import_snapshot(snapshot.to_document())

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def get_person_summary(self, person: Person) -> PersonSummary:
        transactions = await self.list_transactions_for_person(person.id)
        return summarize_person(person, transactions)

    async def list_person_summaries(self) -> list[PersonSummary]:
        """Every person with their totals, ordered by name."""
        persons = await self.list_persons()
        return [await self.get_person_summary(person) for person in persons]

    async def get_totals(self) -> LedgerTotals:
        return compute_totals(await self.list_person_summaries())
