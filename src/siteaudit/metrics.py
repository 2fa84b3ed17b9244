"""Performance metrics and the automated check battery."""

import logging
from typing import Optional
from urllib.parse import urlparse

from .browser_session import BrowserSession
from .config import PerformanceSettings
from .models import Issue, IssueCategory, PerformanceSnapshot

logger = logging.getLogger(__name__)


# Returns null when the Navigation Timing entry is unavailable.
_PERFORMANCE_SCRIPT = """
() => {
    const entries = performance.getEntriesByType('navigation');
    if (!entries || entries.length === 0) {
        return null;
    }
    const navigation = entries[0];
    const paint = performance.getEntriesByName('first-paint')[0];
    return {
        loadTime: Math.round(navigation.loadEventEnd - navigation.fetchStart),
        domContentLoaded: Math.round(navigation.domContentLoadedEventEnd - navigation.fetchStart),
        firstPaint: paint ? paint.startTime : 0,
        imageCount: document.images.length,
        linkCount: document.links.length,
        scriptCount: document.scripts.length
    };
}
"""


class MetricsChecker:
    """Reads navigation timing and runs the fixed SEO/accessibility battery."""

    def __init__(self, performance_settings: Optional[PerformanceSettings] = None):
        self.thresholds = performance_settings or PerformanceSettings()

    async def read_performance(self, session: BrowserSession) -> PerformanceSnapshot:
        """Single navigation-timing read; empty snapshot if unavailable."""
        data = await session.evaluate(_PERFORMANCE_SCRIPT, default=None)
        if not isinstance(data, dict):
            logger.debug("Navigation timing unavailable, returning empty snapshot")
            return PerformanceSnapshot()

        return PerformanceSnapshot(
            load_time_ms=data.get("loadTime"),
            dom_content_loaded_ms=data.get("domContentLoaded"),
            first_paint_ms=data.get("firstPaint"),
            image_count=data.get("imageCount"),
            link_count=data.get("linkCount"),
            script_count=data.get("scriptCount"),
        )

    async def run_checks(
        self,
        session: BrowserSession,
        snapshot: Optional[PerformanceSnapshot] = None,
    ) -> list[Issue]:
        """Run the ordered check battery against the current page.

        A fault part-way through is recorded as one Error issue; issues
        found before it are kept.

        Args:
            session: Session whose current page is checked
            snapshot: Performance snapshot to judge; read fresh when omitted

        Returns:
            Ordered list of issues
        """
        issues: list[Issue] = []

        try:
            if await session.query_count('meta[name="description"]') == 0:
                issues.append(Issue(IssueCategory.SEO, "Missing meta description"))

            missing_alt = await session.query_count("img:not([alt])")
            if missing_alt > 0:
                issues.append(Issue(
                    IssueCategory.ACCESSIBILITY,
                    f"{missing_alt} images missing alt text",
                ))

            h1_count = await session.query_count("h1")
            if h1_count == 0:
                issues.append(Issue(IssueCategory.SEO, "No H1 tag found"))
            elif h1_count > 1:
                issues.append(Issue(IssueCategory.SEO, f"Multiple H1 tags found ({h1_count})"))

            if urlparse(session.current_url).scheme != "https":
                issues.append(Issue(IssueCategory.SECURITY, "Site not using HTTPS"))

            if snapshot is None:
                snapshot = await self.read_performance(session)
            issues.extend(self.check_performance(snapshot))

        except Exception as e:
            logger.warning(f"Check battery interrupted: {e}")
            issues.append(Issue(
                IssueCategory.ERROR,
                f"Could not complete all checks: {e}",
            ))

        return issues

    def check_performance(self, snapshot: PerformanceSnapshot) -> list[Issue]:
        """Threshold checks over a snapshot. Absent values are skipped."""
        issues = []

        load_time = snapshot.load_time_ms
        if load_time is not None and load_time > self.thresholds.slow_load_time_ms:
            issues.append(Issue(
                IssueCategory.PERFORMANCE,
                f"Slow page load time: {round(load_time)}ms",
            ))

        if snapshot.image_count is not None and snapshot.image_count > self.thresholds.max_image_count:
            issues.append(Issue(
                IssueCategory.PERFORMANCE,
                f"High image count: {snapshot.image_count} "
                f"(threshold {self.thresholds.max_image_count})",
            ))

        if snapshot.script_count is not None and snapshot.script_count > self.thresholds.max_script_count:
            issues.append(Issue(
                IssueCategory.PERFORMANCE,
                f"High script count: {snapshot.script_count} "
                f"(threshold {self.thresholds.max_script_count})",
            ))

        return issues
