from pathlib import Path

from archive_lite.config import (
    DEFAULT_REQUEST_DELAY,
    DEFAULT_SCREENSHOT_QUALITY,
    DEFAULT_SCREENSHOT_TIMEOUT,
    clamp_quality,
    load_capture_config,
    parse_browser_flags,
)

ENV_VARS = (
    "ARCHIVE_DATA_DIR",
    "ARCHIVE_DB_PATH",
    "ARCHIVE_REQUEST_DELAY",
    "SCREENSHOT_TIMEOUT",
    "SCREENSHOT_QUALITY",
    "CHROME_PATH",
    "CHROME_FLAGS",
    "SCREENSHOT_ENABLED",
)


def _clear_env(monkeypatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)

    config = load_capture_config()

    assert config.storage.raw_dir == Path("data") / "raw"
    assert config.storage.assets_dir == Path("data") / "assets"
    assert config.storage.screenshots_dir == Path("data") / "screenshots"
    assert config.db_path == Path("archive.db")
    assert config.request_delay == DEFAULT_REQUEST_DELAY
    assert config.browser.timeout == DEFAULT_SCREENSHOT_TIMEOUT
    assert config.browser.quality == DEFAULT_SCREENSHOT_QUALITY
    assert config.browser.executable_path is None
    assert config.browser.extra_flags == ()
    assert config.screenshots_enabled is True


def test_environment_overrides(monkeypatch, tmp_path: Path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("ARCHIVE_DATA_DIR", str(tmp_path / "store"))
    monkeypatch.setenv("ARCHIVE_DB_PATH", str(tmp_path / "db.sqlite"))
    monkeypatch.setenv("ARCHIVE_REQUEST_DELAY", "0.5")
    monkeypatch.setenv("SCREENSHOT_TIMEOUT", "12")
    monkeypatch.setenv("SCREENSHOT_QUALITY", "150")
    monkeypatch.setenv("CHROME_PATH", "/usr/bin/chromium")
    monkeypatch.setenv("CHROME_FLAGS", "--lang=en-US, window-size=800,600 ,,--mute-audio")
    monkeypatch.setenv("SCREENSHOT_ENABLED", "false")

    config = load_capture_config()

    assert config.storage.data_dir == tmp_path / "store"
    assert config.db_path == tmp_path / "db.sqlite"
    assert config.request_delay == 0.5
    assert config.browser.timeout == 12.0
    assert config.browser.quality == 100
    assert config.browser.executable_path == "/usr/bin/chromium"
    assert config.browser.extra_flags == ("--lang=en-US", "--mute-audio")
    assert config.screenshots_enabled is False


def test_invalid_numbers_fall_back_to_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SCREENSHOT_TIMEOUT", "soon")
    monkeypatch.setenv("SCREENSHOT_QUALITY", "high")
    monkeypatch.setenv("ARCHIVE_REQUEST_DELAY", "-1")

    config = load_capture_config()

    assert config.browser.timeout == DEFAULT_SCREENSHOT_TIMEOUT
    assert config.browser.quality == DEFAULT_SCREENSHOT_QUALITY
    assert config.request_delay == DEFAULT_REQUEST_DELAY


def test_parse_browser_flags_skips_non_flags(caplog) -> None:
    flags = parse_browser_flags("--disable-dev-shm-usage,proxy-server=x,--hide-scrollbars")

    assert flags == ("--disable-dev-shm-usage", "--hide-scrollbars")
    assert "proxy-server=x" in caplog.text
    assert parse_browser_flags(None) == ()
    assert parse_browser_flags("") == ()


def test_clamp_quality() -> None:
    assert clamp_quality(0) == 1
    assert clamp_quality(55) == 55
    assert clamp_quality(101) == 100
