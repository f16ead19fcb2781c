"""Shared fixtures: every test gets its own SQLite file under tmp_path."""

import pytest

from money_manager.audit import AuditLogger
from money_manager.backup import BackupService
from money_manager.ledger import LedgerService
from money_manager.services.sharing import DirectoryShareTarget
from money_manager.services.storage import SQLiteLedgerStorage


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "ledger.db")


@pytest.fixture
def storage(db_path):
    return SQLiteLedgerStorage(database_path=db_path)


@pytest.fixture
def ledger(storage):
    return LedgerService(storage, audit_logger=AuditLogger())


@pytest.fixture
def share_target(tmp_path):
    return DirectoryShareTarget(tmp_path / "outbox")


@pytest.fixture
def backup_service(ledger, share_target, tmp_path):
    return BackupService(
        ledger,
        share_target=share_target,
        backup_directory=tmp_path / "backups",
    )


def person_record(person_id="p1", name="Alice", **overrides):
    record = {
        "id": person_id,
        "name": name,
        "phone": "",
        "email": "",
        "imageUri": None,
        "createdAt": "2024-01-01T09:00:00.000Z",
    }
    record.update(overrides)
    return record


def transaction_record(
    transaction_id="t1",
    person_id="p1",
    amount=100.0,
    type="credit",
    date="2024-01-02T10:00:00.000Z",
    **overrides,
):
    record = {
        "id": transaction_id,
        "personId": person_id,
        "amount": amount,
        "type": type,
        "description": "",
        "date": date,
        "createdAt": "2024-01-02T10:00:00.000Z",
    }
    record.update(overrides)
    return record
