from typing import Dict, List, Optional, Tuple

import pytest

from archive_lite.errors import FetchError, RedirectBlockedError
from archive_lite.redirects import (
    AGGREGATOR_PARENT_URL,
    RedirectResolver,
    blocked_marker,
    embedded_target_url,
    is_shortener_url,
)


class FakeTransport:
    def __init__(self, redirects: Optional[Dict[str, str]] = None, prime_fails: bool = False) -> None:
        self.redirects = redirects or {}
        self.prime_fails = prime_fails
        self.primed: List[str] = []
        self.resolved: List[Tuple[str, Optional[str]]] = []

    def prime(self, url: str) -> None:
        self.primed.append(url)
        if self.prime_fails:
            raise FetchError(url, "failed to access Google homepage")

    def resolve(self, url: str, referer: Optional[str] = None) -> str:
        self.resolved.append((url, referer))
        target = self.redirects.get(url)
        if target is None:
            raise FetchError(url, f"failed to resolve redirects for '{url}'")
        return target


def test_plain_url_is_returned_without_requests() -> None:
    transport = FakeTransport()
    resolver = RedirectResolver(transport)

    url = "https://example.com/articles/1"
    assert resolver.resolve(url) == url
    assert resolver.resolve(resolver.resolve(url)) == url
    assert transport.resolved == []
    assert transport.primed == []


def test_shortener_follows_redirects_once() -> None:
    transport = FakeTransport({"https://bit.ly/abc": "https://example.com/story"})
    resolver = RedirectResolver(transport)

    assert resolver.resolve("https://bit.ly/abc") == "https://example.com/story"
    assert transport.resolved == [("https://bit.ly/abc", None)]
    assert transport.primed == []


def test_shortener_landing_on_captcha_is_blocked() -> None:
    transport = FakeTransport({"https://t.co/xyz": "https://example.com/CAPTCHA?next=1"})
    resolver = RedirectResolver(transport)

    with pytest.raises(RedirectBlockedError) as excinfo:
        resolver.resolve("https://t.co/xyz")
    assert excinfo.value.reason == "captcha"

    outcome = resolver.try_resolve("https://t.co/xyz")
    assert outcome.final_url == "https://t.co/xyz"
    assert outcome.blocked is True
    assert outcome.block_reason == "captcha"


def test_try_resolve_falls_back_on_network_failure() -> None:
    resolver = RedirectResolver(FakeTransport())

    outcome = resolver.try_resolve("https://tinyurl.com/gone")

    assert outcome.final_url == "https://tinyurl.com/gone"
    assert outcome.blocked is False


def test_aggregator_primes_cookies_and_sends_parent_referer() -> None:
    link = "https://news.google.com/rss/articles/CBMi123"
    transport = FakeTransport({link: "https://publisher.example/news/1"})
    resolver = RedirectResolver(transport)

    assert resolver.resolve(link) == "https://publisher.example/news/1"
    assert transport.primed == [AGGREGATOR_PARENT_URL]
    assert transport.resolved == [(link, AGGREGATOR_PARENT_URL)]


def test_aggregator_priming_failure_is_not_fatal() -> None:
    link = "https://news.google.com/articles/abc"
    transport = FakeTransport({link: "https://publisher.example/a"}, prime_fails=True)

    assert RedirectResolver(transport).resolve(link) == "https://publisher.example/a"


def test_aggregator_falls_back_to_url_parameter_when_stuck() -> None:
    link = (
        "https://news.google.com/articles/abc"
        "?url=https%3A%2F%2Fpublisher.example%2Fstory%3Fid%3D7&hl=en"
    )
    transport = FakeTransport({link: "https://news.google.com/articles/abc?hl=en"})

    assert RedirectResolver(transport).resolve(link) == "https://publisher.example/story?id=7"


def test_aggregator_falls_back_to_url_parameter_when_blocked() -> None:
    link = "https://news.google.com/articles/abc?url=https%3A%2F%2Fpublisher.example%2Fx"
    transport = FakeTransport({link: "https://www.google.com/sorry/index?continue=1"})

    assert RedirectResolver(transport).resolve(link) == "https://publisher.example/x"


def test_aggregator_blocked_without_parameter_raises() -> None:
    link = "https://news.google.com/articles/abc"
    transport = FakeTransport({link: "https://www.google.com/sorry/index"})

    with pytest.raises(RedirectBlockedError):
        RedirectResolver(transport).resolve(link)


def test_host_matching_is_not_a_substring_match() -> None:
    assert is_shortener_url("https://t.co/abc")
    assert is_shortener_url("https://www.bit.ly/abc")
    assert not is_shortener_url("https://microsoft.com/t.co")
    assert not is_shortener_url("https://notbit.ly/abc")


def test_helpers() -> None:
    assert blocked_marker("https://example.com/Sorry/page") == "sorry"
    assert blocked_marker("https://example.com/fine") is None
    assert embedded_target_url("https://news.google.com/a?url=https%3A%2F%2Fx.example") == "https://x.example"
    assert embedded_target_url("https://news.google.com/a") is None


def test_embedded_target_is_decoded_twice() -> None:
    link = "https://news.google.com/a?url=https%253A%252F%252Fpublisher.example%252Fstory"
    transport = FakeTransport({link: "https://news.google.com/a"})

    assert embedded_target_url(link) == "https://publisher.example/story"
    assert RedirectResolver(transport).resolve(link) == "https://publisher.example/story"
