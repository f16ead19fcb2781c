"""
SQLite Storage Implementation

DESIGN DECISION: An embedded SQLite file is the only backend because:
1. The ledger belongs to one person on one device
2. No server or setup required
3. Real transactions make clear-all and restore all-or-nothing
4. Backups are a JSON export, not a copy of this file

TRADEOFFS:
- One connection, so every operation is serialized through a lock
- Blocking sqlite3 calls are pushed to a worker thread to keep the
  event loop free

Persons and transactions live in two tables. Column names match the
camelCase keys of the backup format so rows map 1:1 onto records.
"""

import asyncio
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

import structlog

from money_manager.config import get_settings
from money_manager.models.ledger import utc_now_iso
from money_manager.services.storage.interface import (
    PERSON_COLUMNS,
    PERSON_REQUIRED,
    TRANSACTION_COLUMNS,
    TRANSACTION_REQUIRED,
    InitializationError,
    LedgerStorageInterface,
    Record,
    RecordSchemaError,
    StorageIOError,
)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS persons (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    phone TEXT,
    email TEXT,
    imageUri TEXT,
    createdAt TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    personId TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL CHECK (type IN ('credit', 'debit')),
    description TEXT,
    date TEXT NOT NULL,
    createdAt TEXT NOT NULL,
    FOREIGN KEY (personId) REFERENCES persons (id) ON DELETE CASCADE
);

CREATE INDEX IF NOT EXISTS idx_transactions_personId ON transactions(personId);
CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date);
"""

# ON CONFLICT ... DO UPDATE rather than INSERT OR REPLACE: REPLACE deletes
# the old person row first, which would fire the cascade on its transactions.
UPSERT_PERSON_SQL = """
INSERT INTO persons (id, name, phone, email, imageUri, createdAt)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    name = excluded.name,
    phone = excluded.phone,
    email = excluded.email,
    imageUri = excluded.imageUri,
    createdAt = excluded.createdAt
"""

UPSERT_TRANSACTION_SQL = """
INSERT INTO transactions (id, personId, amount, type, description, date, createdAt)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    personId = excluded.personId,
    amount = excluded.amount,
    type = excluded.type,
    description = excluded.description,
    date = excluded.date,
    createdAt = excluded.createdAt
"""

INSERT_PERSON_SQL = """
INSERT INTO persons (id, name, phone, email, imageUri, createdAt)
VALUES (?, ?, ?, ?, ?, ?)
"""

INSERT_TRANSACTION_SQL = """
INSERT INTO transactions (id, personId, amount, type, description, date, createdAt)
VALUES (?, ?, ?, ?, ?, ?, ?)
"""


def _check_record(record: Any, required: tuple, kind: str) -> None:
    """Reject records missing a required column."""
    if not isinstance(record, dict):
        raise RecordSchemaError(f"{kind} record must be an object, got {type(record).__name__}")
    missing = [column for column in required if record.get(column) is None]
    if missing:
        raise RecordSchemaError(
            f"{kind} record {record.get('id')!r} is missing: {', '.join(missing)}"
        )


def _person_params(record: Record) -> tuple:
    _check_record(record, PERSON_REQUIRED, "Person")
    return tuple(record.get(column) for column in PERSON_COLUMNS)


def _transaction_params(record: Record) -> tuple:
    _check_record(record, TRANSACTION_REQUIRED, "Transaction")
    return tuple(record.get(column) for column in TRANSACTION_COLUMNS)


def _rows_to_records(rows: Iterable[sqlite3.Row], columns: tuple) -> list[Record]:
    return [{column: row[column] for column in columns} for row in rows]


@contextmanager
def _atomic(conn: sqlite3.Connection, mode: str = "IMMEDIATE"):
    """
    Run a block inside one SQLite transaction.

    Commits on success, rolls back on any exception and re-raises it.
    """
    conn.execute(f"BEGIN {mode}")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


class SQLiteLedgerStorage(LedgerStorageInterface):
    """
    SQLite implementation of ledger storage.

    The instance owns its connection: create it, optionally call
    initialize() at startup, and close() it on shutdown.
    """

    def __init__(
        self,
        database_path: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        format_version: Optional[str] = None,
    ):
        settings = get_settings()
        self._database_path = database_path or settings.database.path
        self._timeout = (
            settings.database.timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._format_version = format_version or settings.backup.format_version
        self._connection: Optional[sqlite3.Connection] = None
        self._init_lock = asyncio.Lock()
        self._op_lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    @property
    def database_path(self) -> str:
        return self._database_path

    @property
    def is_initialized(self) -> bool:
        return self._connection is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _open(self) -> sqlite3.Connection:
        """Open the database file and make sure the schema exists."""
        if self._database_path != ":memory:":
            Path(self._database_path).parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(
            self._database_path,
            timeout=self._timeout,
            isolation_level=None,  # transactions are explicit, see _atomic
            check_same_thread=False,  # serialized by _op_lock
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            conn.executescript(SCHEMA_SQL)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    async def initialize(self) -> sqlite3.Connection:
        """Open the database once, however many callers race to do it."""
        if self._connection is not None:
            return self._connection

        async with self._init_lock:
            # Another caller may have finished while we waited
            if self._connection is not None:
                return self._connection

            self._logger.info("storage_initializing", path=self._database_path)
            try:
                self._connection = await asyncio.to_thread(self._open)
            except (sqlite3.Error, OSError) as e:
                self._logger.error(
                    "storage_initialization_failed",
                    path=self._database_path,
                    error=str(e),
                )
                raise InitializationError(
                    f"Could not open ledger database at {self._database_path}: {e}"
                ) from e

            self._logger.info("storage_initialized", path=self._database_path)
            return self._connection

    async def close(self) -> None:
        async with self._op_lock:
            if self._connection is None:
                return
            conn, self._connection = self._connection, None
            await asyncio.to_thread(conn.close)
            self._logger.info("storage_closed", path=self._database_path)

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking operation on the shared connection, one at a time."""
        async with self._op_lock:
            conn = await self.initialize()
            return await asyncio.to_thread(func, conn, *args)

    async def _read(self, operation: str, func: Callable[..., Any], *args: Any) -> list[Record]:
        """Run a listing query; engine errors degrade to an empty list."""
        try:
            return await self._run(func, *args)
        except sqlite3.Error as e:
            self._logger.error("storage_read_failed", operation=operation, error=str(e))
            return []

    async def _write(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        """Run a write; engine errors propagate as StorageIOError."""
        try:
            return await self._run(func, *args)
        except sqlite3.Error as e:
            self._logger.error("storage_write_failed", operation=operation, error=str(e))
            raise StorageIOError(f"Failed to {operation.replace('_', ' ')}: {e}") from e

    # -------------------------------------------------------------------------
    # Persons
    # -------------------------------------------------------------------------

    @staticmethod
    def _select_persons(conn: sqlite3.Connection) -> list[Record]:
        rows = conn.execute("SELECT * FROM persons ORDER BY name ASC").fetchall()
        return _rows_to_records(rows, PERSON_COLUMNS)

    async def list_persons(self) -> list[Record]:
        return await self._read("list_persons", self._select_persons)

    async def upsert_person(self, record: Record) -> bool:
        params = _person_params(record)

        def upsert(conn: sqlite3.Connection) -> bool:
            conn.execute(UPSERT_PERSON_SQL, params)
            return True

        return await self._write("save_person", upsert)

    async def delete_person(self, person_id: str) -> bool:
        def delete(conn: sqlite3.Connection) -> bool:
            with _atomic(conn):
                conn.execute("DELETE FROM transactions WHERE personId = ?", (person_id,))
                cursor = conn.execute("DELETE FROM persons WHERE id = ?", (person_id,))
            return cursor.rowcount > 0

        return await self._write("delete_person", delete)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @staticmethod
    def _select_transactions(conn: sqlite3.Connection) -> list[Record]:
        rows = conn.execute("SELECT * FROM transactions ORDER BY date DESC").fetchall()
        return _rows_to_records(rows, TRANSACTION_COLUMNS)

    async def list_transactions(self) -> list[Record]:
        return await self._read("list_transactions", self._select_transactions)

    async def list_transactions_for_person(self, person_id: str) -> list[Record]:
        def select(conn: sqlite3.Connection) -> list[Record]:
            rows = conn.execute(
                "SELECT * FROM transactions WHERE personId = ? ORDER BY date DESC",
                (person_id,),
            ).fetchall()
            return _rows_to_records(rows, TRANSACTION_COLUMNS)

        return await self._read("list_transactions_for_person", select)

    async def upsert_transaction(self, record: Record) -> bool:
        params = _transaction_params(record)

        def upsert(conn: sqlite3.Connection) -> bool:
            conn.execute(UPSERT_TRANSACTION_SQL, params)
            return True

        return await self._write("save_transaction", upsert)

    async def delete_transaction(self, transaction_id: str) -> bool:
        def delete(conn: sqlite3.Connection) -> bool:
            cursor = conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
            return cursor.rowcount > 0

        return await self._write("delete_transaction", delete)

    async def delete_transactions_for_person(self, person_id: str) -> int:
        def delete(conn: sqlite3.Connection) -> int:
            cursor = conn.execute("DELETE FROM transactions WHERE personId = ?", (person_id,))
            return cursor.rowcount

        return await self._write("delete_transactions_for_person", delete)

    # -------------------------------------------------------------------------
    # Bulk operations
    # -------------------------------------------------------------------------

    @staticmethod
    def _delete_everything(conn: sqlite3.Connection) -> None:
        conn.execute("DELETE FROM transactions")
        conn.execute("DELETE FROM persons")

    @staticmethod
    def _insert_persons(conn: sqlite3.Connection, persons: list[tuple]) -> None:
        conn.executemany(INSERT_PERSON_SQL, persons)

    @staticmethod
    def _insert_transactions(conn: sqlite3.Connection, transactions: list[tuple]) -> None:
        conn.executemany(INSERT_TRANSACTION_SQL, transactions)

    async def clear_all(self) -> None:
        def clear(conn: sqlite3.Connection) -> None:
            with _atomic(conn):
                self._delete_everything(conn)

        await self._write("clear_all_data", clear)
        self._logger.warning("storage_cleared", path=self._database_path)

    async def export_snapshot(self) -> Record:
        def export(conn: sqlite3.Connection) -> Record:
            # One read transaction so persons and transactions agree
            with _atomic(conn, mode="DEFERRED"):
                persons = self._select_persons(conn)
                transactions = self._select_transactions(conn)
            return {
                "version": self._format_version,
                "exportDate": utc_now_iso(),
                "persons": persons,
                "transactions": transactions,
            }

        return await self._write("export_data", export)

    async def import_snapshot(self, snapshot: Record) -> None:
        persons = snapshot.get("persons") if isinstance(snapshot, dict) else None
        transactions = snapshot.get("transactions") if isinstance(snapshot, dict) else None
        if not isinstance(persons, list) or not isinstance(transactions, list):
            raise RecordSchemaError("Snapshot must contain 'persons' and 'transactions' lists")

        # Validate every record before touching the database
        person_rows = [_person_params(record) for record in persons]
        transaction_rows = [_transaction_params(record) for record in transactions]

        def replace(conn: sqlite3.Connection) -> None:
            with _atomic(conn):
                self._delete_everything(conn)
                self._insert_persons(conn, person_rows)
                self._insert_transactions(conn, transaction_rows)

        await self._write("import_data", replace)
        self._logger.info(
            "storage_imported",
            person_count=len(person_rows),
            transaction_count=len(transaction_rows),
        )
