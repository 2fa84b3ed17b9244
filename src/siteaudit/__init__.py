"""Automated website auditor: screenshots, popup detection and basic SEO checks."""

__version__ = "0.1.0"

from siteaudit.browser_session import BrowserSession, ProbeResult
from siteaudit.capture import PageCaptureUnit
from siteaudit.config import AuditSettings, ConfigManager
from siteaudit.errors import (
    AuditError,
    CaptureIOError,
    LaunchError,
    NavigationError,
)
from siteaudit.metrics import MetricsChecker
from siteaudit.models import (
    AuditResult,
    BatchSummary,
    Classification,
    Issue,
    IssueCategory,
    PageCapture,
    PerformanceSnapshot,
    PlatformFinding,
    PopupCandidate,
    PopupFinding,
    PopupType,
)
from siteaudit.orchestrator import AuditOrchestrator
from siteaudit.platform_detector import PlatformDetector
from siteaudit.popup_detector import PopupDetector
from siteaudit.report_writer import ReportWriter
from siteaudit.runner import BatchRunner

__all__ = [
    # Pipeline
    "BatchRunner",
    "AuditOrchestrator",
    "BrowserSession",
    "ProbeResult",
    "PlatformDetector",
    "PopupDetector",
    "PageCaptureUnit",
    "MetricsChecker",
    "ReportWriter",
    # Configuration
    "AuditSettings",
    "ConfigManager",
    # Models
    "AuditResult",
    "BatchSummary",
    "Classification",
    "Issue",
    "IssueCategory",
    "PageCapture",
    "PerformanceSnapshot",
    "PlatformFinding",
    "PopupCandidate",
    "PopupFinding",
    "PopupType",
    # Errors
    "AuditError",
    "LaunchError",
    "NavigationError",
    "CaptureIOError",
]
