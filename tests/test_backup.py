"""Tests for backup, sharing and restore."""

import asyncio
import json
from pathlib import Path

import pytest

from money_manager.backup import (
    BackupService,
    InvalidBackupFormatError,
    RestoreFlow,
    RestoreStateError,
    parse_backup_document,
)
from money_manager.ledger import LedgerService
from money_manager.models.backup import RestoreState
from money_manager.services.sharing import SHARE_STATUS_DISMISSED, ShareTargetInterface
from money_manager.services.storage import SQLiteLedgerStorage


def run(coro):
    return asyncio.run(coro)


class DismissingShareTarget(ShareTargetInterface):
    """Share target where the user closes the share sheet."""

    def __init__(self, available=True):
        self.available = available
        self.shared = []

    async def is_available(self) -> bool:
        return self.available

    async def share(self, file_path, mime_type, title):
        self.shared.append((file_path, mime_type, title))
        return SHARE_STATUS_DISMISSED


def write_backup(path: Path, document) -> Path:
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


VALID_DOCUMENT = {
    "version": "1.0.0",
    "exportDate": "2024-05-01T00:00:00.000Z",
    "persons": [{
        "id": "p1",
        "name": "Alice",
        "phone": "",
        "email": "",
        "imageUri": None,
        "createdAt": "2024-01-01T00:00:00.000Z",
    }],
    "transactions": [{
        "id": "t1",
        "personId": "p1",
        "amount": 100,
        "type": "credit",
        "description": "",
        "date": "2024-01-02T00:00:00.000Z",
        "createdAt": "2024-01-02T00:00:00.000Z",
    }],
}


class TestParseBackupDocument:
    """Tests for backup document checks."""

    @pytest.mark.parametrize("document", [
        {},
        {"persons": []},
        {"transactions": []},
        {"persons": {}, "transactions": []},
        [],
        "backup",
    ])
    def test_incomplete_documents_rejected(self, document):
        with pytest.raises(InvalidBackupFormatError):
            parse_backup_document(document)

    def test_bad_record_rejected(self):
        document = dict(VALID_DOCUMENT, transactions=[dict(VALID_DOCUMENT["transactions"][0], type="gift")])
        with pytest.raises(InvalidBackupFormatError):
            parse_backup_document(document)

    def test_valid_document(self):
        snapshot = parse_backup_document(VALID_DOCUMENT)
        assert snapshot.persons[0].name == "Alice"
        assert snapshot.transactions[0].amount == 100.0


class TestCreateAndShare:
    """Tests for writing and sharing backups."""

    def test_create_backup_writes_json(self, ledger, backup_service):
        async def scenario():
            alice = await ledger.create_person("Alice")
            await ledger.create_transaction(alice.id, 100, "credit")
            result = await backup_service.create_backup()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is True
        path = Path(result.file_path)
        assert path.parent == backup_service.backup_directory
        assert path.name.startswith("money_manager_backup_")
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["version"] == "1.0.0"
        assert set(document) == {"version", "exportDate", "persons", "transactions"}
        assert document["persons"][0]["name"] == "Alice"
        assert document["transactions"][0]["amount"] == 100.0

    def test_share_backup_copies_to_outbox(self, ledger, backup_service, share_target):
        async def scenario():
            await ledger.create_person("Alice")
            result = await backup_service.share_backup()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is True
        assert result.share_status == "shared"
        assert (share_target.directory / Path(result.file_path).name).exists()

    def test_dismissed_share_is_not_success(self, ledger, tmp_path):
        target = DismissingShareTarget()
        service = BackupService(ledger, share_target=target, backup_directory=tmp_path / "b")

        async def scenario():
            result = await service.share_backup()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is False
        assert result.share_status == SHARE_STATUS_DISMISSED
        assert target.shared[0][1] == "application/json"

    def test_unavailable_share_reports_error(self, ledger, tmp_path):
        service = BackupService(
            ledger,
            share_target=DismissingShareTarget(available=False),
            backup_directory=tmp_path / "b",
        )

        async def scenario():
            result = await service.share_backup()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is False
        assert "not available" in result.error


class TestRestore:
    """Tests for restoring from a backup file."""

    def test_restore_replaces_existing_data(self, ledger, backup_service, tmp_path):
        path = write_backup(tmp_path / "backup.json", VALID_DOCUMENT)

        async def scenario():
            await ledger.create_person("Old Person")
            result = await backup_service.restore_from_file(path)
            persons = await ledger.list_persons()
            transactions = await ledger.list_transactions()
            await ledger.close()
            return result, persons, transactions

        result, persons, transactions = run(scenario())
        assert result.success is True
        assert result.person_count == 1
        assert [p.id for p in persons] == ["p1"]
        assert [t.id for t in transactions] == ["t1"]

    @pytest.mark.parametrize("document", [{}, {"persons": []}])
    def test_invalid_document_leaves_store_unchanged(self, ledger, backup_service, tmp_path, document):
        path = write_backup(tmp_path / "bad.json", document)

        async def scenario():
            old = await ledger.create_person("Old Person")
            result = await backup_service.restore_from_file(path)
            persons = await ledger.list_persons()
            await ledger.close()
            return old, result, persons

        old, result, persons = run(scenario())
        assert result.success is False
        assert "Invalid backup file format" in result.error
        assert persons == [old]

    def test_not_json_rejected(self, ledger, backup_service, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello", encoding="utf-8")

        async def scenario():
            with pytest.raises(InvalidBackupFormatError):
                await backup_service.load_backup_file(path)
            result = await backup_service.restore_from_file(path)
            await ledger.close()
            return result

        assert run(scenario()).success is False

    def test_non_utf8_file_rejected(self, ledger, backup_service, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"persons": [], "transactions": [], "x": "\xff\xfe"}')

        async def scenario():
            with pytest.raises(InvalidBackupFormatError, match="not UTF-8"):
                await backup_service.load_backup_file(path)
            old = await ledger.create_person("Old Person")
            result = await backup_service.restore_from_file(path)
            persons = await ledger.list_persons()
            await ledger.close()
            return old, result, persons

        old, result, persons = run(scenario())
        assert result.success is False
        assert "not UTF-8" in result.error
        assert persons == [old]

    def test_invalid_records_leave_store_unchanged(self, ledger, backup_service, tmp_path):
        bad_transaction = dict(VALID_DOCUMENT["transactions"][0], amount=-100)
        path = write_backup(tmp_path / "negative.json", dict(VALID_DOCUMENT, transactions=[bad_transaction]))

        async def scenario():
            old = await ledger.create_person("Old Person")
            result = await backup_service.restore_from_file(path)
            persons = await ledger.list_persons()
            await ledger.close()
            return old, result, persons

        old, result, persons = run(scenario())
        assert result.success is False
        assert "negative" in result.error
        assert persons == [old]

    def test_missing_file_reports_error(self, ledger, backup_service, tmp_path):
        async def scenario():
            result = await backup_service.restore_from_file(tmp_path / "missing.json")
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is False
        assert result.error

    def test_backup_then_restore_round_trip(self, ledger, backup_service):
        async def scenario():
            alice = await ledger.create_person("Alice", phone="555")
            await ledger.create_transaction(alice.id, 42, "debit", description="Books")
            before = await ledger.export_snapshot()
            backup = await backup_service.create_backup()
            await ledger.clear_all()
            result = await backup_service.restore_from_file(backup.file_path)
            after = await ledger.export_snapshot()
            await ledger.close()
            return before, result, after

        before, result, after = run(scenario())
        assert result.success is True
        assert after.persons == before.persons
        assert after.transactions == before.transactions


class TestBackupInfo:
    """Tests for the backup summary."""

    def test_info_self_initializes(self, storage, backup_service):
        async def scenario():
            assert storage.is_initialized is False
            info = await backup_service.get_backup_info()
            initialized = storage.is_initialized
            await storage.close()
            return info, initialized

        info, initialized = run(scenario())
        assert initialized is True
        assert info.person_count == 0
        assert info.transaction_count == 0
        assert info.version == "1.0.0"

    def test_info_counts(self, ledger, backup_service):
        async def scenario():
            alice = await ledger.create_person("Alice")
            await ledger.create_transaction(alice.id, 1, "credit")
            await ledger.create_transaction(alice.id, 2, "debit")
            info = await backup_service.get_backup_info()
            await ledger.close()
            return info

        info = run(scenario())
        assert info.person_count == 1
        assert info.transaction_count == 2
        assert info.last_export

    def test_info_falls_back_when_storage_unavailable(self, tmp_path):
        ledger = LedgerService(SQLiteLedgerStorage(database_path=str(tmp_path)))
        service = BackupService(ledger, backup_directory=tmp_path / "b")

        info = run(service.get_backup_info())
        assert info.person_count == 0
        assert info.transaction_count == 0


class TestRestoreFlow:
    """Tests for the restore state machine."""

    def test_full_flow(self, ledger, backup_service, tmp_path):
        path = write_backup(tmp_path / "backup.json", VALID_DOCUMENT)
        flow = RestoreFlow(backup_service)

        async def scenario():
            assert flow.state == RestoreState.IDLE
            flow.select_file(path)
            assert flow.state == RestoreState.FILE_SELECTED
            flow.confirm()
            assert flow.state == RestoreState.CONFIRMED
            result = await flow.run()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is True
        assert flow.state == RestoreState.SUCCESS
        flow.reset()
        assert flow.state == RestoreState.IDLE
        assert flow.file_path is None

    def test_run_requires_confirmation(self, backup_service, tmp_path):
        flow = RestoreFlow(backup_service)
        flow.select_file(tmp_path / "backup.json")

        with pytest.raises(RestoreStateError):
            run(flow.run())
        assert flow.state == RestoreState.FILE_SELECTED

    def test_confirm_requires_file(self, backup_service):
        flow = RestoreFlow(backup_service)
        with pytest.raises(RestoreStateError):
            flow.confirm()

    def test_cancel_returns_to_idle(self, backup_service, tmp_path):
        flow = RestoreFlow(backup_service)
        flow.select_file(tmp_path / "backup.json")
        flow.confirm()
        flow.cancel()
        assert flow.state == RestoreState.IDLE
        assert flow.file_path is None

    def test_non_utf8_file_ends_in_failed(self, ledger, backup_service, tmp_path):
        path = tmp_path / "latin1.json"
        path.write_bytes(b'{"persons": [], "transactions": [], "x": "\xff\xfe"}')
        flow = RestoreFlow(backup_service)

        async def scenario():
            flow.select_file(path)
            flow.confirm()
            result = await flow.run()
            await ledger.close()
            return result

        result = run(scenario())
        assert result.success is False
        assert flow.state == RestoreState.FAILED
        flow.reset()
        assert flow.state == RestoreState.IDLE

    def test_unexpected_error_ends_in_failed(self, backup_service, tmp_path, monkeypatch):
        async def explode(file_path):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(backup_service, "restore_from_file", explode)
        flow = RestoreFlow(backup_service)
        flow.select_file(tmp_path / "backup.json")
        flow.confirm()

        with pytest.raises(RuntimeError):
            run(flow.run())
        assert flow.state == RestoreState.FAILED
        assert flow.result.success is False
        assert "disk on fire" in flow.result.error
        flow.select_file(tmp_path / "other.json")
        assert flow.state == RestoreState.FILE_SELECTED

    def test_failed_restore_ends_in_failed(self, ledger, backup_service, tmp_path):
        path = write_backup(tmp_path / "bad.json", {"persons": []})
        flow = RestoreFlow(backup_service)

        async def scenario():
            await ledger.create_person("Keep Me")
            flow.select_file(path)
            flow.confirm()
            result = await flow.run()
            persons = await ledger.list_persons()
            await ledger.close()
            return result, persons

        result, persons = run(scenario())
        assert result.success is False
        assert flow.state == RestoreState.FAILED
        assert [p.name for p in persons] == ["Keep Me"]
