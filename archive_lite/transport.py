"""Rate-limited HTTP access shared by every outbound request of a capture."""

from __future__ import annotations

import logging
import threading
import time
from typing import Dict, Optional

import requests

from .config import DEFAULT_REQUEST_DELAY
from .errors import FetchError

logger = logging.getLogger("archive_lite.transport")

REQUEST_TIMEOUT = 30.0

BROWSER_HEADERS: Dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def build_session() -> requests.Session:
    """Create a cookie-keeping session that looks like a desktop browser."""
    session = requests.Session()
    session.headers.update(BROWSER_HEADERS)
    return session


class RateLimitedTransport:
    """Serialize requests so consecutive ones start at least ``min_interval`` apart."""

    def __init__(
        self,
        min_interval: float = DEFAULT_REQUEST_DELAY,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.min_interval = min_interval
        self.timeout = timeout
        self.session = session or build_session()
        self._lock = threading.Lock()
        self._last_request: Optional[float] = None

    def wait(self) -> None:
        """Block until the minimum spacing since the previous request has passed."""
        with self._lock:
            if self._last_request is not None:
                elapsed = time.monotonic() - self._last_request
                if elapsed < self.min_interval:
                    time.sleep(self.min_interval - elapsed)
            self._last_request = time.monotonic()

    def _get(self, url: str, referer: Optional[str]) -> requests.Response:
        headers = {"Referer": referer} if referer else None
        self.wait()
        try:
            return self.session.get(
                url, headers=headers, timeout=self.timeout, allow_redirects=True
            )
        except requests.RequestException as exc:
            raise FetchError(url, f"failed to get URL '{url}': {exc}") from exc

    def fetch(self, url: str, referer: Optional[str] = None) -> bytes:
        """Return the decoded body of ``url``; anything but HTTP 200 is an error."""
        response = self._get(url, referer)
        if response.status_code != 200:
            response.close()
            raise FetchError(
                url,
                f"failed to get URL '{url}': status code {response.status_code}",
                status_code=response.status_code,
            )
        # urllib3 has already undone any gzip/deflate Content-Encoding.
        return response.content

    def resolve(self, url: str, referer: Optional[str] = None) -> str:
        """Follow redirects from ``url`` and return the URL that finally answered."""
        response = self._get(url, referer)
        final_url = response.url
        response.close()
        if final_url != url:
            logger.debug("Redirected %s -> %s", url, final_url)
        return final_url

    def prime(self, url: str) -> None:
        """Visit ``url`` only to collect its cookies."""
        response = self._get(url, None)
        response.close()
        logger.debug("Primed cookies from %s (status %s)", url, response.status_code)


_default_transport: Optional[RateLimitedTransport] = None
_default_lock = threading.Lock()


def get_default_transport(min_interval: float = DEFAULT_REQUEST_DELAY) -> RateLimitedTransport:
    """Return the process-wide transport so the rate limit spans all captures.

    The first caller's ``min_interval`` wins; later callers asking for a
    different spacing get a warning and the existing transport.
    """
    global _default_transport
    with _default_lock:
        if _default_transport is None:
            _default_transport = RateLimitedTransport(min_interval=min_interval)
        elif _default_transport.min_interval != min_interval:
            logger.warning(
                "Shared transport already spaces requests %.2fs apart; ignoring requested %.2fs",
                _default_transport.min_interval,
                min_interval,
            )
        return _default_transport
