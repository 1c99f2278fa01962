from __future__ import annotations

from typing import Optional


class ArchiveError(Exception):
    """Base error for all archive-lite failures."""


class FetchError(ArchiveError):
    """Raised when a page or resource cannot be fetched."""

    def __init__(self, url: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RedirectBlockedError(ArchiveError):
    """Raised when redirect resolution lands on a bot wall."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"access blocked by CAPTCHA or sorry page: {url} ({reason})")
        self.url = url
        self.reason = reason


class AssetFetchError(ArchiveError):
    """Raised when a sub-resource cannot be downloaded."""


class AssetValidationError(ArchiveError):
    """Raised when downloaded sub-resource bytes are rejected."""


class CaptureError(ArchiveError):
    """Raised when the screenshot subsystem fails."""


class StorageError(ArchiveError):
    """Raised when capture artifacts cannot be written."""


class PersistenceError(ArchiveError):
    """Raised when the archive record cannot be stored or read."""


class EntryNotFoundError(ArchiveError):
    """Raised when no archive entry exists for an id."""


class ContentNotFoundError(ArchiveError):
    """Raised when an entry's archived HTML is missing from disk."""


class ScreenshotNotFoundError(ArchiveError):
    """Raised when an entry has no screenshot file on disk."""
