"""Services package."""

from money_manager.services.sharing import (
    DirectoryShareTarget,
    ShareError,
    ShareTargetInterface,
    ShareUnavailableError,
)
from money_manager.services.storage import (
    InitializationError,
    LedgerStorageInterface,
    RecordSchemaError,
    SQLiteLedgerStorage,
    StorageError,
    StorageIOError,
)

__all__ = [
    # Sharing
    "DirectoryShareTarget",
    "ShareError",
    "ShareTargetInterface",
    "ShareUnavailableError",
    # Storage services
    "InitializationError",
    "LedgerStorageInterface",
    "RecordSchemaError",
    "SQLiteLedgerStorage",
    "StorageError",
    "StorageIOError",
]
