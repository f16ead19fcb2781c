"""
Storage Services Package

Provides the abstract ledger storage interface and its SQLite implementation.
"""

from money_manager.services.storage.interface import (
    PERSON_COLUMNS,
    TRANSACTION_COLUMNS,
    InitializationError,
    LedgerStorageInterface,
    Record,
    RecordSchemaError,
    StorageError,
    StorageIOError,
)
from money_manager.services.storage.sqlite_store import SQLiteLedgerStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "PERSON_COLUMNS",
    "Record",
    "TRANSACTION_COLUMNS",
    # Exceptions
    "InitializationError",
    "RecordSchemaError",
    "StorageError",
    "StorageIOError",
    # SQLite implementation
    "SQLiteLedgerStorage",
]
