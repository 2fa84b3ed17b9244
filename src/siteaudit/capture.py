"""Screenshot and metadata capture for a single capture slot."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from .browser_session import BrowserSession
from .config import ScreenshotSettings
from .models import PageCapture

logger = logging.getLogger(__name__)


_PAGE_INFO_SCRIPT = """
() => {
    const description = document.querySelector('meta[name="description"]');
    const heading = document.querySelector('h1');
    return {
        title: document.title || '',
        url: window.location.href,
        description: description ? (description.getAttribute('content') || '') : '',
        h1: heading ? (heading.textContent || '').trim() : '',
        loadTime: performance.now()
    };
}
"""


class PageCaptureUnit:
    """Waits for the page to settle, screenshots it and reads basic metadata.

    The settle delay is a fixed sleep: a page cannot reliably signal that
    it is visually complete.
    """

    def __init__(
        self,
        delay_ms: int = 2000,
        screenshot_settings: Optional[ScreenshotSettings] = None,
    ):
        self.delay_ms = delay_ms
        self.screenshot_settings = screenshot_settings or ScreenshotSettings()

    def screenshot_path(self, name: str, output_dir: Path) -> Path:
        return Path(output_dir) / f"{name}.{self.screenshot_settings.extension}"

    async def capture(self, session: BrowserSession, name: str, output_dir: Path) -> PageCapture:
        """Capture the current page into ``<output_dir>/<name>.<ext>``.

        Raises:
            CaptureIOError: If the screenshot cannot be written
        """
        if self.delay_ms > 0:
            await asyncio.sleep(self.delay_ms / 1000)

        path = self.screenshot_path(name, output_dir)
        await session.screenshot(
            str(path),
            full_page=self.screenshot_settings.full_page,
            image_type=self.screenshot_settings.format,
            quality=self.screenshot_settings.quality,
        )

        info = await session.evaluate(_PAGE_INFO_SCRIPT, default={})
        if not isinstance(info, dict):
            info = {}

        logger.info(f"Captured {name} -> {path}")

        return PageCapture(
            name=name,
            screenshot_path=str(path),
            title=info.get("title") or "",
            url=info.get("url") or "",
            meta_description=info.get("description") or "",
            first_heading_text=info.get("h1") or "",
            client_load_timestamp=float(info.get("loadTime") or 0.0),
        )
