"""High-level orchestration for capturing a URL into a local archive."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple, TypeVar

from bs4 import UnicodeDammit

from .assets import AssetLocalizer
from .config import CaptureConfig, StorageConfig
from .content import extract_assets, extract_title, rewrite_asset_paths
from .errors import CaptureError, FetchError, PersistenceError, StorageError
from .models import ArchiveEntry, AssetReference, CaptureRequest, CaptureResult, LocalizedAsset
from .redirects import RedirectResolver
from .screenshot import ScreenshotCapturer
from .store import ArchiveStore
from .transport import RateLimitedTransport, get_default_transport
from .utils import new_capture_id, now_utc_iso, remove_quietly

logger = logging.getLogger("archive_lite")

T = TypeVar("T")


def ensure_storage_dirs(storage: StorageConfig) -> None:
    """Create the raw HTML, asset and screenshot directories if missing."""
    for directory in (storage.raw_dir, storage.assets_dir, storage.screenshots_dir):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create directory '{directory}': {exc}") from exc


def decode_html(body: bytes) -> str:
    """Decode a fetched page, honouring BOMs and declared charsets."""
    if not body:
        return ""
    markup = UnicodeDammit(body, is_html=True).unicode_markup
    if markup is None:
        return body.decode("utf-8", errors="replace")
    return markup


async def _run_blocking(func: Callable[..., T], *args) -> T:
    """Run ``func`` in a worker thread.

    When the awaiting task is cancelled the thread cannot be stopped, so the
    call is allowed to finish before the cancellation propagates; anything it
    wrote is then known to the caller's cleanup.
    """
    future = asyncio.ensure_future(asyncio.to_thread(func, *args))
    try:
        return await asyncio.shield(future)
    except asyncio.CancelledError:
        await asyncio.wait([future])
        raise


def _write_html(path: Path, markup: str) -> None:
    try:
        path.write_bytes(markup.encode("utf-8"))
    except OSError as exc:
        raise StorageError(f"failed to write HTML to '{path}': {exc}") from exc


class CaptureOrchestrator:
    """Sequence redirect resolution, fetching, localization, snapshot and persistence."""

    def __init__(
        self,
        config: CaptureConfig,
        transport: Optional[RateLimitedTransport] = None,
        capturer: Optional[ScreenshotCapturer] = None,
    ) -> None:
        self.config = config
        self.transport = transport or get_default_transport(config.request_delay)
        self.resolver = RedirectResolver(self.transport)
        self.localizer = AssetLocalizer(self.transport, config.storage.assets_dir)
        if capturer is None and config.screenshots_enabled:
            capturer = ScreenshotCapturer(config.browser)
        self.capturer = capturer

    async def localize_assets(
        self,
        references: List[AssetReference],
        capture_id: str,
        written: List[Path],
    ) -> List[LocalizedAsset]:
        """Download assets one per worker-thread call so cancellation stops between them."""
        assets: List[LocalizedAsset] = []
        if references:
            logger.info("Found %d assets to download", len(references))
        for reference in references:
            asset = await _run_blocking(self.localizer.try_localize, reference, capture_id, written)
            if asset is not None:
                assets.append(asset)
        return assets

    async def capture(
        self,
        request: CaptureRequest,
        capture_id: str,
        written: List[Path],
    ) -> Tuple[CaptureResult, str]:
        """Produce the capture's files and return them with the page title.

        Every file is appended to ``written`` before it is created so the
        caller can remove them if a later step fails or the task is cancelled.
        """
        storage = self.config.storage
        outcome = await asyncio.to_thread(self.resolver.try_resolve, request.original_url)
        final_url = outcome.final_url

        logger.info("Fetching %s", final_url)
        body = await asyncio.to_thread(self.transport.fetch, final_url)
        html = await asyncio.to_thread(decode_html, body)

        references = await asyncio.to_thread(extract_assets, html, final_url)
        assets = await self.localize_assets(references, capture_id, written)

        rewritten = await asyncio.to_thread(
            rewrite_asset_paths, html, capture_id, final_url, storage.asset_url_prefix
        )
        html_path = storage.raw_dir / f"{capture_id}.html"
        written.append(html_path)
        await _run_blocking(_write_html, html_path, rewritten)
        logger.info("Saved HTML to %s", html_path)

        screenshot_path: Optional[Path] = None
        if self.capturer is not None:
            # The intended path is recorded even when the capture fails.
            screenshot_path = storage.screenshots_dir / f"{capture_id}.jpg"
            written.append(screenshot_path)
            try:
                await self.capturer.capture(final_url, screenshot_path)
            except CaptureError as exc:
                logger.warning("Screenshot failed for %s: %s", final_url, exc)

        title = await asyncio.to_thread(extract_title, html)
        result = CaptureResult(
            final_url=final_url,
            rewritten_html_path=html_path,
            screenshot_path=screenshot_path,
            asset_count=len(assets),
        )
        return result, title

    async def archive(self, store: ArchiveStore, url: str) -> ArchiveEntry:
        """Capture ``url`` and persist its entry, leaving nothing behind on failure."""
        start = time.perf_counter()
        await asyncio.to_thread(ensure_storage_dirs, self.config.storage)
        capture_id = new_capture_id()
        written: List[Path] = []
        try:
            result, title = await self.capture(CaptureRequest(url), capture_id, written)
            archived_at = now_utc_iso()
            entry = ArchiveEntry(
                id=capture_id,
                url=result.final_url,
                title=title,
                storage_path=str(result.rewritten_html_path),
                screenshot_path=str(result.screenshot_path) if result.screenshot_path else None,
                archived_at=archived_at,
                created_at=archived_at,
                updated_at=archived_at,
            )
            await _run_blocking(store.create, entry)
        except FetchError as exc:
            logger.error("Failed to fetch HTML content for %s: %s", url, exc)
            self._discard(written)
            raise
        except PersistenceError as exc:
            logger.error("Failed to persist archive entry for %s: %s", url, exc)
            self._discard(written)
            raise
        except (Exception, asyncio.CancelledError):
            self._discard(written)
            raise

        logger.info(
            "Archived %s as %s in %.2fs (%d assets)",
            entry.url,
            entry.id,
            time.perf_counter() - start,
            result.asset_count,
        )
        return entry

    @staticmethod
    def _discard(written: List[Path]) -> None:
        for path in written:
            if remove_quietly(path):
                logger.debug("Removed %s", path)


async def archive_url(
    store: ArchiveStore,
    url: str,
    config: Optional[CaptureConfig] = None,
    transport: Optional[RateLimitedTransport] = None,
    capturer: Optional[ScreenshotCapturer] = None,
) -> ArchiveEntry:
    """Archive ``url`` and return the stored entry."""
    orchestrator = CaptureOrchestrator(config or CaptureConfig(), transport, capturer)
    return await orchestrator.archive(store, url)
