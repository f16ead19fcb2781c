"""Backup sharing package."""

from money_manager.services.sharing.share_target import (
    SHARE_STATUS_DISMISSED,
    SHARE_STATUS_SHARED,
    DirectoryShareTarget,
    ShareError,
    ShareTargetInterface,
    ShareUnavailableError,
)

__all__ = [
    "SHARE_STATUS_DISMISSED",
    "SHARE_STATUS_SHARED",
    "DirectoryShareTarget",
    "ShareError",
    "ShareTargetInterface",
    "ShareUnavailableError",
]
