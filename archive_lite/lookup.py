"""Read back archived entries and the files they point at."""

from __future__ import annotations

from pathlib import Path

from .errors import ContentNotFoundError, EntryNotFoundError, ScreenshotNotFoundError
from .models import ArchiveEntry
from .store import ArchiveStore


def get_entry(store: ArchiveStore, entry_id: str) -> ArchiveEntry:
    if not entry_id:
        raise EntryNotFoundError("archive ID cannot be empty")
    entry = store.get(entry_id)
    if entry is None:
        raise EntryNotFoundError(f"archive entry with ID {entry_id} not found")
    return entry


def content_file(store: ArchiveStore, entry_id: str) -> Path:
    entry = get_entry(store, entry_id)
    if not entry.storage_path:
        raise ContentNotFoundError(f"storage path not found for archive ID {entry_id}")
    path = Path(entry.storage_path)
    if not path.is_file():
        raise ContentNotFoundError(
            f"archived content file not found at {path} for ID {entry_id}"
        )
    return path


def read_content(store: ArchiveStore, entry_id: str) -> str:
    return content_file(store, entry_id).read_text(encoding="utf-8")


def screenshot_file(store: ArchiveStore, entry_id: str) -> Path:
    """Path of an entry's screenshot.

    A recorded path whose file was never written (the capture failed) is
    reported as ``ScreenshotNotFoundError``, distinct from a missing entry.
    """
    entry = get_entry(store, entry_id)
    if not entry.screenshot_path:
        raise ScreenshotNotFoundError(f"screenshot not available for archive ID {entry_id}")
    path = Path(entry.screenshot_path)
    if not path.is_file():
        raise ScreenshotNotFoundError(
            f"screenshot file not found at {path} for ID {entry_id}; it might not have been captured"
        )
    return path
