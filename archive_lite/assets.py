"""Asset downloading, validation and local naming."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from filetype import image_match

from .errors import AssetFetchError, AssetValidationError, FetchError
from .models import AssetReference, LocalizedAsset
from .transport import RateLimitedTransport
from .utils import short_url_hash

logger = logging.getLogger("archive_lite.assets")

SIGNATURE_IMAGE_TYPES = {"png", "jpg", "gif"}
SIGNATURE_BYTES = 4
JPEG_SOI = b"\xff\xd8"
TEXT_ASSET_SUFFIXES = (".css", ".js")
TEXT_SCAN_BYTES = 500
TEXT_WHITESPACE = {0x09, 0x0A, 0x0C, 0x0D}
# Checked in order against the whole URL when its path has no suffix.
SNIFFED_EXTENSIONS = (
    (".css", ".css"),
    (".js", ".js"),
    (".png", ".png"),
    (".jpg", ".jpg"),
    (".jpeg", ".jpg"),
    (".gif", ".gif"),
    (".svg", ".svg"),
    (".webp", ".webp"),
)
MAX_EXTENSION_LENGTH = 10


def detect_image_signature(data: bytes) -> Optional[str]:
    """Return the image type when the leading bytes carry a PNG, JPEG or GIF signature."""
    # filetype wants FF D8 FF; the start-of-image marker alone is enough here.
    if data[: len(JPEG_SOI)] == JPEG_SOI:
        return "jpg"
    kind = image_match(data[:SIGNATURE_BYTES])
    if kind and kind.extension in SIGNATURE_IMAGE_TYPES:
        return kind.extension
    return None


def _is_text_asset_url(url: str) -> bool:
    path = urlparse(url).path.lower()
    return path.endswith(TEXT_ASSET_SUFFIXES)


def validate_asset_content(content: bytes, url: str) -> None:
    """Reject empty bodies and binary garbage served in place of CSS or JavaScript."""
    if not content:
        raise AssetValidationError(f"empty response for asset '{url}'")
    if detect_image_signature(content):
        return
    if _is_text_asset_url(url):
        for byte in content[:TEXT_SCAN_BYTES]:
            if byte < 0x20 and byte not in TEXT_WHITESPACE:
                raise AssetValidationError(
                    f"asset '{url}' should be text but contains control byte 0x{byte:02x}"
                )


def is_valid_asset(content: bytes, url: str) -> bool:
    try:
        validate_asset_content(content, url)
    except AssetValidationError:
        return False
    return True


def guess_extension(url: str) -> str:
    """Best-effort extension for a local asset copy, including the dot."""
    try:
        path = urlparse(url).path
    except ValueError:
        path = ""
    ext = os.path.splitext(path)[1]
    if ext and len(ext) <= MAX_EXTENSION_LENGTH and "/" not in ext:
        return ext
    lowered = url.lower()
    for needle, sniffed in SNIFFED_EXTENSIONS:
        if needle in lowered:
            return sniffed
    return ""


def asset_file_name(url: str, capture_id: str) -> str:
    """Local file name for ``url`` within the capture ``capture_id``."""
    return f"{capture_id}_{short_url_hash(url)}{guess_extension(url)}"


class AssetLocalizer:
    """Download referenced assets one at a time into the assets directory."""

    def __init__(self, transport: RateLimitedTransport, assets_dir: Path) -> None:
        self.transport = transport
        self.assets_dir = assets_dir

    def fetch(self, url: str) -> bytes:
        try:
            return self.transport.fetch(url)
        except FetchError as exc:
            raise AssetFetchError(f"failed to get asset '{url}': {exc}") from exc

    def localize_one(
        self,
        reference: AssetReference,
        capture_id: str,
        written: Optional[List[Path]] = None,
    ) -> LocalizedAsset:
        """Fetch, validate and store one asset.

        The destination is appended to ``written`` before any byte hits the
        disk, so a caller cleaning up after a failure also sees partial files.
        """
        url = reference.resolved_url or reference.raw_url
        content = self.fetch(url)
        validate_asset_content(content, url)
        file_name = asset_file_name(url, capture_id)
        destination = self.assets_dir / file_name
        if written is not None and destination not in written:
            written.append(destination)
        destination.write_bytes(content)
        return LocalizedAsset(source_url=url, local_file_name=file_name, byte_size=len(content))

    def try_localize(
        self,
        reference: AssetReference,
        capture_id: str,
        written: Optional[List[Path]] = None,
    ) -> Optional[LocalizedAsset]:
        """Like ``localize_one`` but logs and returns None for a skipped asset."""
        try:
            asset = self.localize_one(reference, capture_id, written)
        except AssetFetchError as exc:
            logger.warning("%s", exc)
            return None
        except AssetValidationError as exc:
            logger.warning("Invalid asset content, skipping: %s", exc)
            return None
        except OSError as exc:
            logger.warning("Failed to save asset %s: %s", reference.resolved_url, exc)
            return None
        logger.debug("Saved asset %s (%d bytes)", asset.local_file_name, asset.byte_size)
        return asset

    def localize(
        self,
        references: Sequence[AssetReference],
        capture_id: str,
        written: Optional[List[Path]] = None,
    ) -> List[LocalizedAsset]:
        """Store every reference that downloads and validates; skip the rest."""
        assets: List[LocalizedAsset] = []
        total = len(references)
        if total:
            logger.info("Found %d assets to download", total)
        for index, reference in enumerate(references, start=1):
            logger.debug("Downloading asset %d/%d: %s", index, total, reference.resolved_url)
            asset = self.try_localize(reference, capture_id, written)
            if asset is not None:
                assets.append(asset)
        return assets
