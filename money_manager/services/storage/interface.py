"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for ledger storage.
This allows us to:
1. Keep the embedded SQLite database behind a narrow contract
2. Use a throwaway database file (or ':memory:') for testing
3. Keep the ledger service decoupled from SQL

The interface exchanges flat records (dicts keyed by the backup file's
camelCase field names). Converting records to Person/Transaction models
is the ledger service's job.

Writes are insert-or-replace keyed on `id`. Deleting an id that does not
exist is a no-op, not an error.
"""

from abc import ABC, abstractmethod
from typing import Any


Record = dict[str, Any]

PERSON_COLUMNS = ("id", "name", "phone", "email", "imageUri", "createdAt")
PERSON_REQUIRED = ("id", "name", "createdAt")

TRANSACTION_COLUMNS = ("id", "personId", "amount", "type", "description", "date", "createdAt")
TRANSACTION_REQUIRED = ("id", "personId", "amount", "type", "date", "createdAt")


class LedgerStorageInterface(ABC):
    """
    Abstract interface for person and transaction storage.

    Every method initializes the store on first use, so callers never
    have to remember to call initialize() first.
    """

    @abstractmethod
    async def initialize(self) -> Any:
        """
        Open the store and create the schema if absent.

        Safe to call repeatedly and concurrently: exactly one caller does
        the work, the others wait for it and get the same handle.

        Raises:
            InitializationError: If the store cannot be opened
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying handle. A later call reopens lazily."""
        pass

    @abstractmethod
    async def list_persons(self) -> list[Record]:
        """
        All persons ordered by name ascending.

        Returns an empty list (and logs) on a storage engine error.
        """
        pass

    @abstractmethod
    async def upsert_person(self, record: Record) -> bool:
        """
        Insert or fully replace a person by id.

        Raises:
            RecordSchemaError: If required fields are missing
            StorageIOError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_person(self, person_id: str) -> bool:
        """
        Delete a person and every transaction that references them.

        Both deletions land together or not at all.

        Returns:
            True if a person row was removed
        """
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Record]:
        """All transactions, newest date first. Empty list on engine error."""
        pass

    @abstractmethod
    async def list_transactions_for_person(self, person_id: str) -> list[Record]:
        """One person's transactions, newest date first. Empty list on engine error."""
        pass

    @abstractmethod
    async def upsert_transaction(self, record: Record) -> bool:
        """
        Insert or fully replace a transaction by id.

        Raises:
            RecordSchemaError: If required fields are missing
            StorageIOError: If the write fails, including an unknown personId
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete one transaction. Returns True if a row was removed."""
        pass

    @abstractmethod
    async def delete_transactions_for_person(self, person_id: str) -> int:
        """Delete all of a person's transactions. Returns how many were removed."""
        pass

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every person and transaction as one atomic unit."""
        pass

    @abstractmethod
    async def export_snapshot(self) -> Record:
        """
        Full contents as {version, exportDate, persons, transactions}.

        Raises:
            StorageIOError: If the read fails (exports never degrade silently)
        """
        pass

    @abstractmethod
    async def import_snapshot(self, snapshot: Record) -> None:
        """
        Atomically replace all contents with the snapshot.

        Deletes everything, inserts every person, then every transaction.
        On any failure the store is rolled back to its previous contents.

        Raises:
            RecordSchemaError: If the snapshot is malformed (nothing is touched)
            StorageIOError: If the import fails (store left unchanged)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class InitializationError(StorageError):
    """The store could not be opened or its schema created."""
    pass


class StorageIOError(StorageError):
    """The storage engine failed a read or write."""
    pass


class RecordSchemaError(StorageError):
    """A record does not match the persisted schema."""
    pass
