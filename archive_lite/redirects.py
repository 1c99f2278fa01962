"""Resolve aggregator and shortener links to the page they point at."""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qs, unquote, urlparse

from .errors import FetchError, RedirectBlockedError
from .models import RedirectOutcome
from .transport import RateLimitedTransport
from .utils import host_matches

logger = logging.getLogger("archive_lite.redirects")

AGGREGATOR_HOSTS = ("news.google.com",)
AGGREGATOR_PARENT_URL = "https://www.google.com"
SHORTENER_HOSTS = ("t.co", "bit.ly", "tinyurl.com", "goo.gl", "ow.ly")
BLOCKED_MARKERS = ("sorry", "captcha")


def blocked_marker(url: str) -> Optional[str]:
    """Return the bot-wall marker contained in ``url``, if any."""
    lowered = url.lower()
    for marker in BLOCKED_MARKERS:
        if marker in lowered:
            return marker
    return None


def is_aggregator_url(url: str) -> bool:
    return host_matches(url, AGGREGATOR_HOSTS)


def is_shortener_url(url: str) -> bool:
    return host_matches(url, SHORTENER_HOSTS)


def embedded_target_url(url: str) -> Optional[str]:
    """Pull the destination out of a link's ``url`` query parameter.

    The value is unquoted once more after parsing so double-encoded targets
    come out as plain URLs.
    """
    values = parse_qs(urlparse(url).query).get("url")
    if values and values[0]:
        return unquote(values[0])
    return None


class RedirectResolver:
    """Follow or short-circuit redirect chains in front of real content."""

    def __init__(self, transport: RateLimitedTransport) -> None:
        self.transport = transport

    def resolve(self, url: str) -> str:
        """Return the final URL for ``url``.

        Plain URLs are returned untouched without a request. Raises
        ``RedirectBlockedError`` when the chain ends on a bot wall and
        ``FetchError`` when the chain cannot be followed at all.
        """
        if is_aggregator_url(url):
            return self._resolve_aggregator(url)
        if is_shortener_url(url):
            return self._follow(url)
        return url

    def try_resolve(self, url: str) -> RedirectOutcome:
        """Best-effort variant that falls back to ``url`` instead of raising."""
        try:
            final_url = self.resolve(url)
        except RedirectBlockedError as exc:
            logger.warning("Redirect for %s is blocked (%s); using original URL", url, exc.reason)
            return RedirectOutcome(final_url=url, blocked=True, block_reason=exc.reason)
        except FetchError as exc:
            logger.warning("Failed to resolve redirects for %s: %s; using original URL", url, exc)
            return RedirectOutcome(final_url=url)
        if final_url != url:
            logger.info("Resolved URL: %s -> %s", url, final_url)
        return RedirectOutcome(final_url=final_url)

    def _follow(self, url: str, referer: Optional[str] = None) -> str:
        final_url = self.transport.resolve(url, referer=referer)
        marker = blocked_marker(final_url)
        if marker:
            raise RedirectBlockedError(final_url, marker)
        return final_url

    def _resolve_aggregator(self, url: str) -> str:
        try:
            self.transport.prime(AGGREGATOR_PARENT_URL)
        except FetchError as exc:
            logger.warning("Failed to prime cookies from %s: %s", AGGREGATOR_PARENT_URL, exc)

        blocked: Optional[RedirectBlockedError] = None
        final_url: Optional[str] = None
        try:
            final_url = self._follow(url, referer=AGGREGATOR_PARENT_URL)
        except RedirectBlockedError as exc:
            blocked = exc
        except FetchError as exc:
            logger.warning("Failed to follow aggregator link %s: %s", url, exc)

        if final_url is not None and not is_aggregator_url(final_url):
            return final_url

        embedded = embedded_target_url(url)
        if embedded:
            logger.debug("Using embedded url parameter of %s", url)
            return embedded
        if blocked is not None:
            raise blocked
        if final_url is None:
            raise FetchError(url, f"failed to resolve redirects for '{url}'")
        return final_url
