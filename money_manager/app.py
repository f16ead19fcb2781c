"""
Application Wiring for Money Manager

Builds the storage, ledger and backup components with explicit ownership:
the caller creates them here, starts them with `startup()`, and closes the
storage when done. Nothing is held in module-level globals.

DESIGN DECISION: If the database cannot be opened at startup, the app
does NOT pretend to be ready. `startup()` reports the failure, and every
later ledger call raises InitializationError until one of them manages to
open the database (each call retries the open).
"""

from pathlib import Path
from typing import Optional, Union

import structlog

from money_manager.audit import AuditLogger, configure_logging
from money_manager.backup import BackupService
from money_manager.config import get_settings
from money_manager.ledger import LedgerService
from money_manager.services.sharing import ShareTargetInterface
from money_manager.services.storage import InitializationError, SQLiteLedgerStorage


logger = structlog.get_logger(__name__)


def create_app_components(
    database_path: Optional[str] = None,
    backup_directory: Optional[Union[str, Path]] = None,
    share_target: Optional[ShareTargetInterface] = None,
) -> tuple[LedgerService, BackupService, SQLiteLedgerStorage]:
    """
    Factory function to create all application components.

    Args:
        database_path: Override the configured SQLite file (':memory:' for tests)
        backup_directory: Override where backup files are written
        share_target: Where backups are handed for sharing

    Returns:
        (ledger_service, backup_service, storage)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    audit_logger = AuditLogger()
    storage = SQLiteLedgerStorage(database_path=database_path)
    ledger = LedgerService(storage, audit_logger=audit_logger)
    backup = BackupService(
        ledger,
        share_target=share_target,
        backup_directory=backup_directory,
        audit_logger=audit_logger,
    )

    return ledger, backup, storage


async def startup(ledger: LedgerService) -> bool:
    """
    Open the ledger database before the first screen loads.

    Returns False (and logs) if it could not be opened; the components
    stay usable and retry the open on their next call.
    """
    try:
        await ledger.initialize()
    except InitializationError as e:
        logger.error("startup_initialization_failed", error=str(e))
        return False
    return True
