"""Shared fixtures: an in-memory stand-in for BrowserSession."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from siteaudit.browser_session import ProbeResult
from siteaudit.config import AuditSettings, Viewport
from siteaudit.errors import CaptureIOError, NavigationError


class FakeSession:
    """Records what the pipeline asks of the browser and answers from fixtures.

    Page scripts are answered by keyword: the page-info probe, the anchor
    scan and the navigation-timing read each have their own canned value.
    """

    def __init__(self, settings: AuditSettings):
        self.settings = settings
        self.current_viewport: Viewport = settings.browser.default_viewport
        self.viewport_history: List[Viewport] = []
        self.navigations: List[str] = []
        self.screenshots: List[str] = []
        self.current_url = ""
        self.opened = False
        self.closed = False

        self.failing_urls: set = set()
        self.fail_screenshots = False
        self.anchor_hrefs: List[str] = []
        self.timing: Optional[Dict[str, Any]] = {
            "loadTime": 1200,
            "domContentLoaded": 800,
            "firstPaint": 350.5,
            "imageCount": 4,
            "linkCount": 20,
            "scriptCount": 6,
        }
        self.counts: Dict[str, int] = {
            'meta[name="description"]': 1,
            "img:not([alt])": 0,
            "h1": 1,
        }

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def navigate(self, url: str) -> None:
        self.navigations.append(url)
        if url in self.failing_urls:
            raise NavigationError(url, "timed out after 30000ms")
        self.current_url = url

    async def set_viewport(self, viewport: Viewport) -> None:
        self.current_viewport = viewport
        self.viewport_history.append(viewport)

    async def evaluate(self, script: str, arg: Any = None, default: Any = None) -> Any:
        if "performance.now()" in script:
            return {
                "title": f"Title of {self.current_url}",
                "url": self.current_url,
                "description": "A description",
                "h1": "Welcome",
                "loadTime": 1534.2,
            }
        if "querySelectorAll('a[href]')" in script:
            return list(self.anchor_hrefs)
        if "getEntriesByType('navigation')" in script:
            return self.timing
        return default

    async def probe(self, script: str, arg: Any = None, default: Any = None) -> ProbeResult:
        return ProbeResult(value=await self.evaluate(script, arg, default))

    async def query_count(self, selector: str) -> int:
        return self.counts.get(selector, 0)

    async def screenshot(self, path: str, full_page: bool = True,
                         image_type: str = "png", quality: Optional[int] = None) -> None:
        if self.fail_screenshots:
            raise CaptureIOError(path, "disk full")
        Path(path).write_bytes(b"\x89PNG")
        self.screenshots.append(path)


@pytest.fixture
def settings(tmp_path):
    """Settings with all fixed delays disabled and output under tmp_path."""
    return AuditSettings.model_validate({
        "audit": {
            "page_load_delay_ms": 0,
            "popup_detection_delay_ms": 0,
            "delay_between_audits_ms": 0,
        },
        "output": {"base_dir": str(tmp_path / "audits")},
    })


@pytest.fixture
def fake_session(settings):
    return FakeSession(settings)
