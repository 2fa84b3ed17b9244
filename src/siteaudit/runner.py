"""
Batch runner: audits a list of sites over one shared browser session.

The runner only aggregates. The orchestrator already turns every per-site
fault into a failed AuditResult, so the only error that escapes a batch is
LaunchError, raised before any site is audited.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from jinja2 import TemplateError

from .browser_session import BrowserSession
from .config import AuditSettings
from .models import AuditResult, BatchSummary
from .orchestrator import AuditOrchestrator
from .report_writer import ReportWriter

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Runs audits sequentially, one site at a time.

    Usage:
        runner = BatchRunner(settings)
        summary = await runner.run(["https://example.com", ...])
    """

    def __init__(
        self,
        settings: AuditSettings,
        orchestrator: Optional[AuditOrchestrator] = None,
        report_writer: Optional[ReportWriter] = None,
        session_factory: Optional[Callable[[AuditSettings], BrowserSession]] = None,
    ):
        """
        Initialize the batch runner.

        Args:
            settings: AuditSettings shared by every component
            orchestrator: Per-site orchestrator; built from settings if omitted
            report_writer: Report writer; built from settings if omitted
            session_factory: Callable creating the browser session
        """
        self.settings = settings
        self.orchestrator = orchestrator or AuditOrchestrator(settings)
        self.report_writer = report_writer or ReportWriter(settings.output)
        self.session_factory = session_factory or BrowserSession
        self._stop_requested = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        """Stop after the site in progress; no new sites are started."""
        if not self._stop_requested:
            logger.warning("Stop requested, finishing current site before exiting")
        self._stop_requested = True

    async def run(self, urls: List[str]) -> BatchSummary:
        """Audit every URL in order.

        Args:
            urls: Target site URLs

        Returns:
            BatchSummary with one AuditResult per audited URL, in input order

        Raises:
            LaunchError: If the browser cannot be started
        """
        summary = BatchSummary(started_at=datetime.now(timezone.utc))
        session = self.session_factory(self.settings)

        await session.open()
        try:
            for index, url in enumerate(urls):
                if self._stop_requested:
                    summary.interrupted = True
                    logger.warning(f"Skipping {len(urls) - index} remaining site(s)")
                    break

                logger.info(f"[{index + 1}/{len(urls)}] {url}")
                result = await self.orchestrator.audit(session, url)
                summary.results.append(self._write_reports(result))

                if not result.success:
                    logger.error(f"Failed: {result.site_name} ({result.url}): {result.error}")

                is_last = index == len(urls) - 1
                delay_ms = self.settings.audit.delay_between_audits_ms
                if not is_last and delay_ms > 0 and not self._stop_requested:
                    await asyncio.sleep(delay_ms / 1000)
        finally:
            await session.close()

        summary.finished_at = datetime.now(timezone.utc)
        logger.info(
            f"Batch finished: {summary.succeeded} succeeded, {summary.failed} failed "
            f"of {len(urls)} site(s)"
        )
        return summary

    def _write_reports(self, result: AuditResult) -> AuditResult:
        if not result.success:
            return result

        try:
            self.report_writer.write(result)
        except (OSError, ValueError, TemplateError) as e:
            logger.error(f"Could not write reports for {result.url}: {e}")
            return AuditResult.failed(
                result.url,
                result.site_name,
                f"Report could not be written: {e}",
                timestamp=result.timestamp,
            )

        return result
