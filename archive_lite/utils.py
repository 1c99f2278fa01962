"""Utility helpers for hashing, identifiers and file handling."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import urlparse

logger = logging.getLogger("archive_lite")

SHORT_HASH_LENGTH = 8


def short_url_hash(url: str) -> str:
    """Return a stable 8 hex character digest of a URL."""
    return hashlib.md5(url.encode("utf-8")).hexdigest()[:SHORT_HASH_LENGTH]


def new_capture_id() -> str:
    """Generate a new UUID4 as a string."""
    return str(uuid.uuid4())


def now_utc_iso() -> str:
    """Return an ISO timestamp in UTC with microsecond precision."""
    return datetime.now(timezone.utc).isoformat()


def host_matches(url: str, hosts) -> bool:
    """Check whether the URL's host is one of ``hosts`` or a subdomain of one."""
    host = (urlparse(url).hostname or "").lower()
    if not host:
        return False
    return any(host == candidate or host.endswith("." + candidate) for candidate in hosts)


def remove_quietly(path: Path) -> bool:
    """Delete a file, logging instead of raising when that fails."""
    try:
        path.unlink()
    except FileNotFoundError:
        return True
    except OSError as exc:
        logger.warning("Failed to remove %s: %s", path, exc)
        return False
    return True
