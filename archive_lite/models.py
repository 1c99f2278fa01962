"""Data models used throughout the capture pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional


class AssetKind(str, Enum):
    """Kind of sub-resource reference found in a page."""

    STYLE = "style"
    SCRIPT = "script"
    IMAGE = "image"
    FRAME = "frame"


@dataclass(frozen=True)
class CaptureRequest:
    """A URL submitted for archiving."""

    original_url: str


@dataclass(frozen=True)
class RedirectOutcome:
    """Result of best-effort redirect resolution."""

    final_url: str
    blocked: bool = False
    block_reason: Optional[str] = None


@dataclass
class AssetReference:
    """Raw sub-resource reference discovered while parsing a page."""

    raw_url: str
    resolved_url: Optional[str]
    kind: AssetKind


@dataclass
class LocalizedAsset:
    """Downloaded and validated asset stored on disk."""

    source_url: str
    local_file_name: str
    byte_size: int


@dataclass(frozen=True)
class CaptureResult:
    """Artifacts produced by one successful capture."""

    final_url: str
    rewritten_html_path: Path
    screenshot_path: Optional[Path]
    asset_count: int


@dataclass
class ArchiveEntry:
    """Persisted record describing where a capture lives."""

    id: str
    url: str
    title: str
    storage_path: str
    screenshot_path: Optional[str]
    archived_at: str
    created_at: str
    updated_at: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "storage_path": self.storage_path,
            "screenshot_path": self.screenshot_path,
            "archived_at": self.archived_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
