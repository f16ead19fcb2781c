"""
Backup and Restore

Backup: snapshot the ledger -> write a JSON file -> hand it to a share target.
Restore: read a JSON file -> check its shape -> atomically replace the ledger.

CRITICAL: Restore discards ALL existing data before importing.
RestoreFlow makes the user's confirmation an explicit, required step:

    IDLE -> FILE_SELECTED -> CONFIRMED -> IMPORTING -> SUCCESS | FAILED

A malformed file is rejected before the ledger is touched, and a failure
during the import itself rolls back, so a failed restore never loses data.
"""

import asyncio
import json
import time
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError

from money_manager.audit import AuditLogger
from money_manager.config import get_settings
from money_manager.ledger import LedgerService
from money_manager.models.audit import AuditEventBuilder
from money_manager.models.backup import (
    BackupInfo,
    BackupResult,
    RestoreResult,
    RestoreState,
    Snapshot,
)
from money_manager.models.ledger import utc_now_iso
from money_manager.services.sharing import (
    SHARE_STATUS_SHARED,
    DirectoryShareTarget,
    ShareError,
    ShareTargetInterface,
    ShareUnavailableError,
)
from money_manager.services.storage import StorageError
from money_manager.validation import LedgerValidationError


BACKUP_MIME_TYPE = "application/json"
BACKUP_SHARE_TITLE = "Share Money Manager Backup"
BACKUP_FILE_PREFIX = "money_manager_backup_"


class BackupError(Exception):
    """Base exception for backup and restore errors."""
    pass


class InvalidBackupFormatError(BackupError):
    """The file is not a usable backup document."""
    pass


class RestoreStateError(BackupError):
    """A restore step was attempted out of order."""
    pass


def parse_backup_document(document: Any) -> Snapshot:
    """
    Check a decoded backup document and turn it into a Snapshot.

    Raises:
        InvalidBackupFormatError: If 'persons' or 'transactions' is missing
            or not a list, or any record cannot be read
    """
    if not isinstance(document, dict):
        raise InvalidBackupFormatError("Invalid backup file format: expected a JSON object")

    missing = [
        key for key in ("persons", "transactions")
        if not isinstance(document.get(key), list)
    ]
    if missing:
        raise InvalidBackupFormatError(
            f"Invalid backup file format: missing {' and '.join(missing)}"
        )

    try:
        return Snapshot.from_document(document)
    except ValidationError as e:
        raise InvalidBackupFormatError(
            f"Invalid backup file format: {e.error_count()} bad field(s)"
        ) from e


class BackupService:
    """
    Writes, shares and restores ledger backups.

    Results are returned as BackupResult / RestoreResult with a readable
    error message instead of raising, so the caller can show it directly.
    """

    def __init__(
        self,
        ledger: LedgerService,
        share_target: Optional[ShareTargetInterface] = None,
        backup_directory: Optional[Union[str, Path]] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        settings = get_settings().backup
        self._ledger = ledger
        self._share_target = share_target or DirectoryShareTarget()
        self._backup_directory = Path(backup_directory) if backup_directory else settings.directory_path
        self._format_version = settings.format_version
        self._audit_logger = audit_logger or AuditLogger()
        self._logger = structlog.get_logger(__name__)

    @property
    def backup_directory(self) -> Path:
        return self._backup_directory

    def _write_file(self, content: str) -> Path:
        self._backup_directory.mkdir(parents=True, exist_ok=True)
        file_path = self._backup_directory / f"{BACKUP_FILE_PREFIX}{int(time.time() * 1000)}.json"
        file_path.write_text(content, encoding="utf-8")
        return file_path

    async def create_backup(self) -> BackupResult:
        """Export the ledger and write it to a new JSON file."""
        try:
            snapshot = await self._ledger.export_snapshot()
            content = json.dumps(snapshot.to_document(), indent=2, ensure_ascii=False)
            file_path = await asyncio.to_thread(self._write_file, content)
        except (StorageError, OSError) as e:
            self._logger.error("backup_creation_failed", error=str(e))
            await self._audit_logger.log(AuditEventBuilder.backup_failed(str(e)))
            return BackupResult(success=False, error=str(e))

        await self._audit_logger.log(AuditEventBuilder.backup_created(
            file_path=str(file_path),
            person_count=len(snapshot.persons),
            transaction_count=len(snapshot.transactions),
        ))
        return BackupResult(success=True, file_path=str(file_path), snapshot=snapshot)

    async def share_backup(self) -> BackupResult:
        """Create a backup and hand the file to the share target."""
        backup = await self.create_backup()
        if not backup.success:
            return backup

        try:
            if not await self._share_target.is_available():
                raise ShareUnavailableError("Sharing is not available on this device")

            status = await self._share_target.share(
                Path(backup.file_path),
                mime_type=BACKUP_MIME_TYPE,
                title=BACKUP_SHARE_TITLE,
            )
        except ShareError as e:
            self._logger.error("backup_sharing_failed", error=str(e))
            await self._audit_logger.log(AuditEventBuilder.backup_failed(str(e)))
            return backup.model_copy(update={"success": False, "error": str(e)})

        await self._audit_logger.log(AuditEventBuilder.backup_shared(backup.file_path, status))
        return backup.model_copy(update={
            "success": status == SHARE_STATUS_SHARED,
            "share_status": status,
        })

    async def load_backup_file(self, file_path: Union[str, Path]) -> Snapshot:
        """
        Read and check a backup file without touching the ledger.

        Raises:
            InvalidBackupFormatError: If the file is not UTF-8 backup JSON
            OSError: If the file cannot be read
        """
        try:
            content = await asyncio.to_thread(Path(file_path).read_text, encoding="utf-8")
        except UnicodeDecodeError as e:
            raise InvalidBackupFormatError("Invalid backup file format: not UTF-8") from e
        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise InvalidBackupFormatError(f"Invalid backup file format: not JSON ({e.msg})") from e
        return parse_backup_document(document)

    async def restore_from_file(self, file_path: Union[str, Path]) -> RestoreResult:
        """
        Replace the whole ledger with the contents of a backup file.

        Records breaking the person or transaction rules fail the restore
        before anything is deleted.

        Callers must have obtained the user's confirmation first;
        RestoreFlow enforces that.
        """
        try:
            snapshot = await self.load_backup_file(file_path)
            await self._ledger.import_snapshot(snapshot)
        except (BackupError, LedgerValidationError, StorageError, OSError) as e:
            self._logger.error("restore_failed", file_path=str(file_path), error=str(e))
            await self._audit_logger.log(AuditEventBuilder.restore_failed(str(file_path), str(e)))
            return RestoreResult(success=False, error=str(e))

        await self._audit_logger.log(AuditEventBuilder.restore_completed(
            file_path=str(file_path),
            person_count=len(snapshot.persons),
            transaction_count=len(snapshot.transactions),
        ))
        return RestoreResult(success=True, snapshot=snapshot)

    async def get_backup_info(self) -> BackupInfo:
        """
        Counts of what a backup taken now would contain.

        Initializes storage if nobody has yet. Falls back to zero counts
        if the ledger cannot be read.
        """
        try:
            await self._ledger.initialize()
            snapshot = await self._ledger.export_snapshot()
        except StorageError as e:
            self._logger.error("backup_info_failed", error=str(e))
            return BackupInfo(
                person_count=0,
                transaction_count=0,
                last_export=utc_now_iso(),
                version=self._format_version,
            )

        return BackupInfo(
            person_count=len(snapshot.persons),
            transaction_count=len(snapshot.transactions),
            last_export=snapshot.export_date,
            version=snapshot.version,
        )


# Allowed transitions, keyed by the state we're leaving
_TRANSITIONS = {
    RestoreState.IDLE: {RestoreState.FILE_SELECTED},
    RestoreState.FILE_SELECTED: {RestoreState.FILE_SELECTED, RestoreState.CONFIRMED, RestoreState.IDLE},
    RestoreState.CONFIRMED: {RestoreState.IMPORTING, RestoreState.IDLE},
    RestoreState.IMPORTING: {RestoreState.SUCCESS, RestoreState.FAILED},
    RestoreState.SUCCESS: {RestoreState.IDLE, RestoreState.FILE_SELECTED},
    RestoreState.FAILED: {RestoreState.IDLE, RestoreState.FILE_SELECTED},
}


class RestoreFlow:
    """
    Drives one restore through its states.

    Usage:
        flow = RestoreFlow(backup_service)
        flow.select_file(path)      # user picked a file
        flow.confirm()              # user accepted "this replaces all data"
        result = await flow.run()
    """

    def __init__(self, backup_service: BackupService):
        self._backup_service = backup_service
        self._state = RestoreState.IDLE
        self._file_path: Optional[Path] = None
        self._result: Optional[RestoreResult] = None

    @property
    def state(self) -> RestoreState:
        return self._state

    @property
    def file_path(self) -> Optional[Path]:
        return self._file_path

    @property
    def result(self) -> Optional[RestoreResult]:
        return self._result

    def _move_to(self, new_state: RestoreState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RestoreStateError(
                f"Cannot go from {self._state.value} to {new_state.value}"
            )
        self._state = new_state

    def select_file(self, file_path: Union[str, Path]) -> None:
        self._move_to(RestoreState.FILE_SELECTED)
        self._file_path = Path(file_path)
        self._result = None

    def confirm(self) -> None:
        """Record the user's confirmation of the destructive restore."""
        self._move_to(RestoreState.CONFIRMED)

    def cancel(self) -> None:
        self._move_to(RestoreState.IDLE)
        self._file_path = None

    def reset(self) -> None:
        self._move_to(RestoreState.IDLE)
        self._file_path = None
        self._result = None

    async def run(self) -> RestoreResult:
        if self._state != RestoreState.CONFIRMED:
            raise RestoreStateError(
                f"Restore must be confirmed before it runs (state: {self._state.value})"
            )

        self._move_to(RestoreState.IMPORTING)
        try:
            self._result = await self._backup_service.restore_from_file(self._file_path)
        except Exception as e:
            # Never leave the flow stuck in IMPORTING
            self._result = RestoreResult(success=False, error=str(e))
            self._move_to(RestoreState.FAILED)
            raise
        self._move_to(RestoreState.SUCCESS if self._result.success else RestoreState.FAILED)
        return self._result
