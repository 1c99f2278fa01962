"""Headless browser snapshots of archived pages."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from .config import BrowserConfig
from .errors import CaptureError
from .utils import remove_quietly

logger = logging.getLogger("archive_lite.screenshot")

BASE_BROWSER_FLAGS = (
    "--no-sandbox",
    "--headless",
    "--disable-gpu",
    "--single-process",
    "--ignore-certificate-errors",
)
VIEWPORT = {"width": 1280, "height": 800}


def build_launch_args(config: BrowserConfig) -> List[str]:
    """Fixed browser flags followed by the operator-supplied ones."""
    args = list(BASE_BROWSER_FLAGS)
    for flag in config.extra_flags:
        if flag not in args:
            args.append(flag)
    return args


class ScreenshotCapturer:
    """Render a URL in headless Chromium and save a full-page JPEG."""

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config

    async def _render(self, url: str) -> bytes:
        """Navigate, let the page settle and return the encoded screenshot."""
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(
                headless=True,
                args=build_launch_args(self.config),
                executable_path=self.config.executable_path,
            )
            try:
                context = await browser.new_context(
                    viewport=VIEWPORT,
                    ignore_https_errors=True,
                )
                page = await context.new_page()
                await page.goto(url, wait_until="domcontentloaded")
                await page.wait_for_selector("body", state="attached")
                if self.config.settle_delay:
                    await asyncio.sleep(self.config.settle_delay)
                return await page.screenshot(
                    type="jpeg",
                    quality=self.config.quality,
                    full_page=True,
                )
            finally:
                await browser.close()

    async def capture(self, url: str, output_path: Path) -> Path:
        """Write a snapshot of ``url`` to ``output_path`` within the configured timeout.

        Raises ``CaptureError`` on navigation failures, timeouts and empty
        captures; in every failure case no file is left at ``output_path``.
        """
        logger.info("Capturing screenshot of %s", url)
        try:
            image = await asyncio.wait_for(self._render(url), timeout=self.config.timeout)
        except asyncio.TimeoutError as exc:
            raise CaptureError(
                f"screenshot of '{url}' timed out after {self.config.timeout:g}s"
            ) from exc
        except PlaywrightError as exc:
            raise CaptureError(f"failed to capture screenshot of '{url}': {exc}") from exc

        if not image:
            raise CaptureError(f"screenshot of '{url}' is empty")

        partial = output_path.with_name(f".{output_path.name}.part")
        try:
            partial.write_bytes(image)
            partial.replace(output_path)
        except OSError as exc:
            remove_quietly(partial)
            raise CaptureError(f"failed to write screenshot to '{output_path}': {exc}") from exc
        logger.info("Saved screenshot to %s (%d bytes)", output_path, len(image))
        return output_path
