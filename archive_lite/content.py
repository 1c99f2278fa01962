"""HTML parsing: asset discovery, local path rewriting and title extraction."""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag
from readability import Document

from .assets import asset_file_name
from .models import AssetKind, AssetReference

logger = logging.getLogger("archive_lite.content")

# Element name -> (attribute holding the reference, kind of asset)
ASSET_ATTRIBUTES: Dict[str, Tuple[str, AssetKind]] = {
    "link": ("href", AssetKind.STYLE),
    "script": ("src", AssetKind.SCRIPT),
    "img": ("src", AssetKind.IMAGE),
    "iframe": ("src", AssetKind.FRAME),
}


def resolve_asset_url(base_url: str, raw_url: str) -> Optional[str]:
    """Turn an attribute value into an absolute http(s) URL, or ``None`` to skip it.

    Both the extraction and the rewrite pass go through this function so a
    reference maps to the same file name in each.
    """
    value = raw_url.strip()
    if not value or value.lower().startswith("data:"):
        return None
    if value.startswith(("http://", "https://")):
        return value
    try:
        resolved = urljoin(base_url, value)
        scheme = urlparse(resolved).scheme
    except ValueError:
        return None
    if scheme not in ("http", "https"):
        return None
    return resolved


def _iter_asset_tags(soup: BeautifulSoup) -> Iterator[Tuple[Tag, str, AssetKind]]:
    for tag in soup.find_all(list(ASSET_ATTRIBUTES)):
        attribute, kind = ASSET_ATTRIBUTES[tag.name]
        if tag.has_attr(attribute):
            yield tag, attribute, kind


def extract_assets(html: str, base_url: str) -> List[AssetReference]:
    """List every resolvable style, script, image and frame reference in ``html``."""
    soup = BeautifulSoup(html, "html.parser")
    references: List[AssetReference] = []
    for tag, attribute, kind in _iter_asset_tags(soup):
        raw_url = tag.get(attribute) or ""
        resolved = resolve_asset_url(base_url, raw_url)
        if resolved is None:
            continue
        references.append(AssetReference(raw_url=raw_url, resolved_url=resolved, kind=kind))
    return references


def rewrite_asset_paths(
    html: str,
    capture_id: str,
    base_url: str,
    prefix: str,
) -> str:
    """Point every resolvable reference at its local copy under ``prefix``."""
    soup = BeautifulSoup(html, "html.parser")
    prefix = prefix.rstrip("/")
    rewritten = 0
    for tag, attribute, _kind in _iter_asset_tags(soup):
        resolved = resolve_asset_url(base_url, tag.get(attribute) or "")
        if resolved is None:
            continue
        tag[attribute] = f"{prefix}/{asset_file_name(resolved, capture_id)}"
        rewritten += 1
    if not rewritten:
        return html
    return soup.decode()


def extract_title(html: str) -> str:
    """Best-effort page title; empty string when the page has none."""
    if not html.strip():
        return ""
    title: Optional[str] = None
    try:
        title = Document(html).short_title()
    except Exception as exc:  # noqa: BLE001
        logger.debug("Readability could not parse title: %s", exc)
    if not title:
        soup = BeautifulSoup(html, "html.parser")
        if soup.title and soup.title.string:
            title = soup.title.string
    return (title or "").strip()
