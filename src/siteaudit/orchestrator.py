"""
Per-site audit sequencing.

The orchestrator drives one site through the fixed probe sequence:

    navigate -> detect platform -> detect popups -> classify
    -> capture desktop homepage -> capture product pages (commerce only)
    -> capture mobile homepage -> restore desktop viewport -> run checks

It always returns exactly one AuditResult per site. Faults before the
result is assembled produce an error-tagged record instead of an exception.
"""
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional
from urllib.parse import urlparse

from .browser_session import BrowserSession
from .capture import PageCaptureUnit
from .config import AuditSettings
from .constants import (
    HOMEPAGE_DESKTOP_SLOT,
    HOMEPAGE_MOBILE_SLOT,
    PRODUCT_PATH_PATTERNS,
    PRODUCT_SLOT_TEMPLATE,
)
from .errors import NavigationError
from .metrics import MetricsChecker
from .models import AuditResult, Classification, PageCapture
from .platform_detector import PlatformDetector
from .popup_detector import PopupDetector

logger = logging.getLogger(__name__)


_ANCHOR_HREFS_SCRIPT = """
() => Array.from(document.querySelectorAll('a[href]')).map(link => link.href)
"""


def site_name_from_url(url: str) -> str:
    """Filesystem-safe site name derived from the URL's host.

    Examples:
        https://www.example.com/shop -> www_example_com
        http://localhost:8080 -> localhost
    """
    host = urlparse(url).hostname or url
    return re.sub(r"[^A-Za-z0-9_-]", "_", host)


def filter_product_links(hrefs: Iterable[str], limit: int) -> list[str]:
    """Pick product page candidates from anchor hrefs.

    Keeps absolute http(s) links whose URL contains a product/shop path and
    no fragment, removes duplicates (first occurrence wins), then caps the
    result at ``limit``.
    """
    unique: list[str] = []
    for href in hrefs:
        if not isinstance(href, str) or not href.startswith("http"):
            continue
        lowered = href.lower()
        if "#" in lowered:
            continue
        if not any(pattern in lowered for pattern in PRODUCT_PATH_PATTERNS):
            continue
        if href not in unique:
            unique.append(href)

    return unique[:max(limit, 0)]


class AuditOrchestrator:
    """
    Sequences the probes for one site at a time over a shared session.

    The session is passed in per call. Every audit starts by applying the
    desktop viewport and ends by restoring it, whatever happened in between.
    """

    def __init__(
        self,
        settings: AuditSettings,
        platform_detector: Optional[PlatformDetector] = None,
        popup_detector: Optional[PopupDetector] = None,
        capture_unit: Optional[PageCaptureUnit] = None,
        metrics_checker: Optional[MetricsChecker] = None,
    ):
        """
        Args:
            settings: AuditSettings for timings, viewports and output layout
            platform_detector: Override for tests; built from settings if omitted
            popup_detector: Override for tests; built from settings if omitted
            capture_unit: Override for tests; built from settings if omitted
            metrics_checker: Override for tests; built from settings if omitted
        """
        self.settings = settings
        self.platform_detector = platform_detector or PlatformDetector()
        self.popup_detector = popup_detector or PopupDetector(
            delay_ms=settings.audit.popup_detection_delay_ms
        )
        self.capture_unit = capture_unit or PageCaptureUnit(
            delay_ms=settings.audit.page_load_delay_ms,
            screenshot_settings=settings.screenshot,
        )
        self.metrics_checker = metrics_checker or MetricsChecker(settings.performance)

    @property
    def output_root(self) -> Path:
        return Path(self.settings.output.base_dir)

    def create_output_directory(
        self,
        classification: Classification,
        site_name: str,
        timestamp: datetime,
    ) -> Path:
        """Create ``<base>/<bucket>/<site_name>_<epoch_ms>/`` and return it."""
        epoch_ms = int(timestamp.timestamp() * 1000)
        output_dir = self.output_root / classification.directory_name / f"{site_name}_{epoch_ms}"
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    async def audit(self, session: BrowserSession, url: str) -> AuditResult:
        """Audit one site. Never raises (except on cancellation).

        Args:
            session: Open browser session shared across the batch
            url: Site homepage URL

        Returns:
            A successful AuditResult, or a failed one carrying the error
        """
        site_name = site_name_from_url(url)
        timestamp = datetime.now(timezone.utc)
        started = time.monotonic()

        logger.info(f"Starting audit for: {url}")

        try:
            result = await self._run(session, url, site_name, timestamp)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Audit failed for {url}: {message}")
            return AuditResult.failed(url, site_name, message, timestamp=timestamp)
        finally:
            await self._restore_viewport(session)

        logger.info(
            f"Audit complete for {url} in {time.monotonic() - started:.1f}s "
            f"({len(result.pages)} pages, {len(result.issues)} issues) -> {result.output_location}"
        )
        return result

    async def _run(
        self,
        session: BrowserSession,
        url: str,
        site_name: str,
        timestamp: datetime,
    ) -> AuditResult:
        desktop = self.settings.browser.default_viewport
        mobile = self.settings.browser.mobile_viewport

        # Start -> Navigated
        await session.set_viewport(desktop)
        await session.navigate(url)

        # Navigated -> PlatformDetected -> PopupsDetected
        platform = await self.platform_detector.detect_platform(session)
        platform.is_ecommerce = await self.platform_detector.detect_ecommerce(session)
        popups = await self.popup_detector.detect(session)

        # PopupsDetected -> Classified; the bucket is fixed from here on
        classification = Classification.from_popups(popups)
        output_dir = self.create_output_directory(classification, site_name, timestamp)

        pages: list[PageCapture] = []

        # Classified -> DesktopCaptured
        pages.append(await self.capture_unit.capture(session, HOMEPAGE_DESKTOP_SLOT, output_dir))
        metrics = await self.metrics_checker.read_performance(session)

        # DesktopCaptured -> ProductsCaptured(0..n)
        if platform.is_commerce_like:
            logger.info("E-commerce detected, finding product pages...")
            pages.extend(await self._capture_products(session, output_dir))

        # -> MobileCaptured
        await session.set_viewport(mobile)
        await session.navigate(url)
        pages.append(await self.capture_unit.capture(session, HOMEPAGE_MOBILE_SLOT, output_dir))

        # MobileCaptured -> ChecksRun
        await session.set_viewport(desktop)
        issues = await self.metrics_checker.run_checks(session, metrics)

        # ChecksRun -> Assembled
        return AuditResult(
            url=url,
            site_name=site_name,
            timestamp=timestamp,
            success=True,
            platform=platform,
            popups=popups,
            classification=classification,
            pages=pages,
            metrics=metrics,
            issues=issues,
            output_location=str(output_dir),
        )

    async def find_product_links(self, session: BrowserSession) -> list[str]:
        """Product page candidates linked from the current page."""
        hrefs = await session.evaluate(_ANCHOR_HREFS_SCRIPT, default=[])
        if not isinstance(hrefs, list):
            return []
        return filter_product_links(hrefs, self.settings.audit.max_product_pages)

    async def _capture_products(self, session: BrowserSession, output_dir: Path) -> list[PageCapture]:
        captures: list[PageCapture] = []
        product_links = await self.find_product_links(session)
        logger.info(f"Found {len(product_links)} product page(s) to capture")

        for product_url in product_links:
            try:
                await session.navigate(product_url)
            except NavigationError as e:
                logger.warning(f"Skipping product page: {e}")
                continue

            name = PRODUCT_SLOT_TEMPLATE.format(index=len(captures) + 1)
            logger.info(f"Capturing product page: {product_url}")
            captures.append(await self.capture_unit.capture(session, name, output_dir))

        return captures

    async def _restore_viewport(self, session: BrowserSession) -> None:
        desktop = self.settings.browser.default_viewport
        try:
            await session.set_viewport(desktop)
        except Exception as e:
            logger.warning(f"Could not restore desktop viewport: {e}")
