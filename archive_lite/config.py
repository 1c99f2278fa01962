"""Configuration objects and constants for the capture pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger("archive_lite.config")

DEFAULT_DATA_DIR = Path("data")
DEFAULT_DB_PATH = Path("archive.db")
DEFAULT_ASSET_URL_PREFIX = "/data/assets"
DEFAULT_REQUEST_DELAY = 2.0
DEFAULT_SCREENSHOT_TIMEOUT = 30.0
DEFAULT_SCREENSHOT_QUALITY = 80
# Time given to late-loading content before the page is captured.
SETTLE_DELAY_SECONDS = 2.0

FLAG_PREFIX = "--"


@dataclass(frozen=True)
class StorageConfig:
    """Locations of the raw HTML, asset and screenshot directories."""

    data_dir: Path = DEFAULT_DATA_DIR
    asset_url_prefix: str = DEFAULT_ASSET_URL_PREFIX

    @property
    def raw_dir(self) -> Path:
        return self.data_dir / "raw"

    @property
    def assets_dir(self) -> Path:
        return self.data_dir / "assets"

    @property
    def screenshots_dir(self) -> Path:
        return self.data_dir / "screenshots"


@dataclass(frozen=True)
class BrowserConfig:
    """Settings for the headless browser used to take snapshots."""

    timeout: float = DEFAULT_SCREENSHOT_TIMEOUT
    quality: int = DEFAULT_SCREENSHOT_QUALITY
    executable_path: Optional[str] = None
    extra_flags: Tuple[str, ...] = ()
    settle_delay: float = SETTLE_DELAY_SECONDS


@dataclass(frozen=True)
class CaptureConfig:
    """Top-level settings that control a capture."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    db_path: Path = DEFAULT_DB_PATH
    request_delay: float = DEFAULT_REQUEST_DELAY
    screenshots_enabled: bool = True


def clamp_quality(value: int) -> int:
    """Keep JPEG quality inside the 1-100 range the browser accepts."""
    return max(1, min(100, value))


def parse_browser_flags(raw: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated flag list, dropping entries that are not flags."""
    if not raw:
        return ()
    flags = []
    for item in raw.split(","):
        flag = item.strip()
        if not flag:
            continue
        if not flag.startswith(FLAG_PREFIX):
            logger.warning("Ignoring browser flag %r: flags must start with %s", flag, FLAG_PREFIX)
            continue
        flags.append(flag)
    return tuple(flags)


def _read_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("%s=%r is negative; using %s", name, raw, default)
        return default
    return value


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s", name, raw, default)
        return default


def _read_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


def load_browser_config() -> BrowserConfig:
    """Build the browser configuration from the environment."""
    timeout = _read_float_env("SCREENSHOT_TIMEOUT", DEFAULT_SCREENSHOT_TIMEOUT)
    if timeout == 0:
        timeout = DEFAULT_SCREENSHOT_TIMEOUT
    return BrowserConfig(
        timeout=timeout,
        quality=clamp_quality(_read_int_env("SCREENSHOT_QUALITY", DEFAULT_SCREENSHOT_QUALITY)),
        executable_path=os.getenv("CHROME_PATH") or None,
        extra_flags=parse_browser_flags(os.getenv("CHROME_FLAGS")),
    )


def load_capture_config() -> CaptureConfig:
    """Build the full capture configuration from the environment."""
    data_dir = Path(os.getenv("ARCHIVE_DATA_DIR") or DEFAULT_DATA_DIR)
    db_path = Path(os.getenv("ARCHIVE_DB_PATH") or DEFAULT_DB_PATH)
    return CaptureConfig(
        storage=StorageConfig(data_dir=data_dir),
        browser=load_browser_config(),
        db_path=db_path,
        request_delay=_read_float_env("ARCHIVE_REQUEST_DELAY", DEFAULT_REQUEST_DELAY),
        screenshots_enabled=_read_bool_env("SCREENSHOT_ENABLED", True),
    )
