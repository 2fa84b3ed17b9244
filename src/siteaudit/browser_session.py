"""
Shared browser session for sequential site audits.

This module provides a BrowserSession class that owns exactly one Playwright
browser and one page. Every component of an audit receives the session as an
explicit argument; nothing holds it globally.

    async with BrowserSession(settings) as session:
        await session.navigate("https://example.com")
        title = await session.evaluate("() => document.title", default="")
"""
import logging
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import AuditSettings, Viewport
from .constants import NAVIGATION_WAIT_UNTIL
from .errors import CaptureIOError, LaunchError, NavigationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ProbeResult(Generic[T]):
    """Outcome of a best-effort page probe.

    ``value`` is always usable: it holds the default when the probe faulted.
    """

    value: T
    fault: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fault is None


class BrowserSession:
    """
    One browser, one page, reused across every site in a batch.

    Features:
    - Realistic desktop user agent and launch flags
    - Default navigation/operation timeouts from settings
    - Viewport switching that persists across navigations
    - Probes that never raise (faults collapse into defaults)
    - Idempotent teardown
    """

    def __init__(self, settings: AuditSettings):
        """
        Initialize the session. Nothing is launched until open().

        Args:
            settings: AuditSettings with browser and timeout configuration
        """
        self._settings = settings
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self._viewport: Viewport = settings.browser.default_viewport

    async def __aenter__(self) -> "BrowserSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._page is not None

    @property
    def page(self):
        """The underlying Playwright page.

        Raises:
            RuntimeError: If the session has not been opened
        """
        if self._page is None:
            raise RuntimeError("Browser session is not open. Call open() first.")
        return self._page

    @property
    def current_viewport(self) -> Viewport:
        return self._viewport

    @property
    def current_url(self) -> str:
        return self.page.url

    async def open(self) -> None:
        """Launch the browser and create the page.

        Raises:
            LaunchError: If the browser cannot be started
        """
        if self.is_open:
            return

        browser_settings = self._settings.browser
        timeout_ms = self._settings.audit.navigation_timeout_ms

        logger.info(f"Launching chromium browser (headless={browser_settings.headless})")

        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=browser_settings.headless,
                args=browser_settings.launch_args,
            )
            self._context = await self._browser.new_context(
                viewport=self._viewport.as_dict(),
                user_agent=browser_settings.user_agent,
                locale="en-US",
            )
            self._page = await self._context.new_page()
        except Exception as e:
            await self.close()
            raise LaunchError(f"Could not launch browser: {e}") from e

        self._page.set_default_navigation_timeout(timeout_ms)
        self._page.set_default_timeout(timeout_ms)

        logger.info("Browser launched successfully")

    async def close(self) -> None:
        """Tear down page, browser and driver. Safe to call repeatedly."""
        page, context, browser, playwright = (
            self._page, self._context, self._browser, self._playwright
        )
        self._page = self._context = self._browser = self._playwright = None

        if page is None and browser is None and playwright is None:
            return

        if context is not None:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Error closing browser context: {e}")

        if browser is not None:
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")

        self._viewport = self._settings.browser.default_viewport
        logger.info("Browser closed")

    async def navigate(self, url: str) -> None:
        """Load a URL and wait for network quiescence.

        Raises:
            NavigationError: On timeout or an unreachable host
        """
        page = self.page
        timeout_ms = self._settings.audit.navigation_timeout_ms

        logger.debug(f"Navigating to {url}")
        try:
            await page.goto(url, wait_until=NAVIGATION_WAIT_UNTIL, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, f"timed out after {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, e.message) from e

    async def set_viewport(self, viewport: Viewport) -> None:
        """Switch device emulation for this and subsequent navigations."""
        await self.page.set_viewport_size(viewport.as_dict())
        self._viewport = viewport
        logger.debug(f"Viewport set to {viewport.width}x{viewport.height}")

    async def probe(self, script: str, arg: Any = None, default: T = None) -> ProbeResult[T]:
        """Run a read-only script in the page, collapsing faults into the default."""
        try:
            if arg is None:
                value = await self.page.evaluate(script)
            else:
                value = await self.page.evaluate(script, arg)
        except Exception as e:
            logger.warning(f"Page probe failed: {e}")
            return ProbeResult(value=default, fault=str(e) or type(e).__name__)

        return ProbeResult(value=value)

    async def evaluate(self, script: str, arg: Any = None, default: Any = None) -> Any:
        """Run a read-only script in the page and return its value (or the default)."""
        result = await self.probe(script, arg, default)
        return result.value

    async def query_count(self, selector: str) -> int:
        """Count elements matching a CSS selector. Faults propagate."""
        return await self.page.locator(selector).count()

    async def screenshot(
        self,
        path: str,
        full_page: bool = True,
        image_type: str = "png",
        quality: Optional[int] = None,
    ) -> None:
        """Persist a screenshot of the current page.

        Raises:
            CaptureIOError: If the image cannot be produced or written
        """
        options: dict[str, Any] = {"path": path, "full_page": full_page, "type": image_type}
        if image_type == "jpeg" and quality is not None:
            options["quality"] = quality

        try:
            await self.page.screenshot(**options)
        except (OSError, PlaywrightError) as e:
            raise CaptureIOError(path, str(e)) from e
