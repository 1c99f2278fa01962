"""MCP server exposing archive-lite capture and retrieval tools."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .archiver import archive_url
from .config import load_capture_config
from .lookup import get_entry, read_content, screenshot_file
from .store import ArchiveStore

logger = logging.getLogger("archive_lite.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="archive-lite")


def _open_store() -> ArchiveStore:
    config = load_capture_config()
    store = ArchiveStore(config.db_path)
    store.initialize()
    return store


@mcp.tool()
async def archive(url: str) -> dict:
    """Capture a web page, its assets and a screenshot; return the archive entry."""
    config = load_capture_config()
    store = await asyncio.to_thread(_open_store)
    entry = await archive_url(store, url, config=config)
    return entry.to_dict()


@mcp.tool()
async def list_archives(limit: Optional[int] = None) -> List[dict]:
    """List archived entries, newest first."""
    store = await asyncio.to_thread(_open_store)
    entries = await asyncio.to_thread(store.list_entries, limit)
    return [entry.to_dict() for entry in entries]


@mcp.tool()
async def get_archive(entry_id: str) -> dict:
    """Return the metadata of one archive entry."""
    store = await asyncio.to_thread(_open_store)
    entry = await asyncio.to_thread(get_entry, store, entry_id)
    return entry.to_dict()


@mcp.tool()
async def get_archive_content(entry_id: str) -> str:
    """Return the archived HTML of one entry."""
    store = await asyncio.to_thread(_open_store)
    return await asyncio.to_thread(read_content, store, entry_id)


@mcp.tool()
async def get_archive_screenshot(entry_id: str) -> str:
    """Return the path of an entry's JPEG screenshot.

    Fails with a screenshot-not-found error, distinct from a missing entry,
    when the snapshot was never captured.
    """
    store = await asyncio.to_thread(_open_store)
    path = await asyncio.to_thread(screenshot_file, store, entry_id)
    return str(path)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
