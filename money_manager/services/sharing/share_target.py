"""
Backup Share Targets

DESIGN DECISION: Handing a backup file to "somewhere else" (email, cloud
drive, a messaging app) is the platform's job. The backup service only
sees this small interface, so any share mechanism can be plugged in.

The bundled DirectoryShareTarget copies the file into an outbox
directory, which is enough for desktop use and for tests.
"""

import asyncio
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from money_manager.config import get_settings


SHARE_STATUS_SHARED = "shared"
SHARE_STATUS_DISMISSED = "dismissed"


class ShareError(Exception):
    """Base exception for share target errors."""
    pass


class ShareUnavailableError(ShareError):
    """Sharing is not available on this device."""
    pass


class ShareTargetInterface(ABC):
    """Anything a backup file can be handed to."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether sharing can be attempted at all."""
        pass

    @abstractmethod
    async def share(self, file_path: Path, mime_type: str, title: str) -> str:
        """
        Share a file.

        Returns:
            A status string; "shared" means the file was delivered

        Raises:
            ShareError: If the share mechanism fails
        """
        pass


class DirectoryShareTarget(ShareTargetInterface):
    """Shares a backup by copying it into an outbox directory."""

    def __init__(self, directory: Optional[Path] = None):
        self._directory = Path(directory) if directory else get_settings().backup.share_directory_path
        self._logger = structlog.get_logger(__name__)

    @property
    def directory(self) -> Path:
        return self._directory

    async def is_available(self) -> bool:
        try:
            await asyncio.to_thread(self._directory.mkdir, parents=True, exist_ok=True)
        except OSError as e:
            self._logger.warning("share_directory_unavailable", directory=str(self._directory), error=str(e))
            return False
        return True

    async def share(self, file_path: Path, mime_type: str, title: str) -> str:
        destination = self._directory / Path(file_path).name
        try:
            await asyncio.to_thread(shutil.copy2, file_path, destination)
        except OSError as e:
            raise ShareError(f"Could not copy backup to {self._directory}: {e}") from e

        self._logger.info(
            "backup_shared",
            destination=str(destination),
            mime_type=mime_type,
            title=title,
        )
        return SHARE_STATUS_SHARED
