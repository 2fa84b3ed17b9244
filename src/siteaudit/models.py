"""Data models for site audits."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Enumerations
# ============================================================================

class Classification(Enum):
    """Audit bucket, decided by popup detection."""
    POPUP_DETECTED = "PopupDetected"
    NO_POPUP = "NoPopup"

    @classmethod
    def from_popups(cls, popups: "PopupFinding") -> "Classification":
        return cls.POPUP_DETECTED if popups.has_popup else cls.NO_POPUP

    @property
    def directory_name(self) -> str:
        """Directory under the output root that groups audits of this bucket."""
        return "popup_detected" if self is Classification.POPUP_DETECTED else "no_popup"


class PopupType(Enum):
    """Kind of popup observed on the homepage."""
    NONE = "None"
    EMAIL_SIGNUP = "EmailSignup"
    DISCOUNT_OFFER = "DiscountOffer"
    EMAIL_DISCOUNT = "Email + Discount"
    GENERAL = "GeneralPopup"


class IssueCategory(Enum):
    """Category of an automated check finding."""
    SEO = "SEO"
    ACCESSIBILITY = "Accessibility"
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    ERROR = "Error"


# ============================================================================
# Detection Models
# ============================================================================

@dataclass
class PlatformFinding:
    """Platform and commerce signals for a loaded page."""

    is_recognized_commerce_platform: bool = False
    is_ecommerce: bool = False
    signals: list[str] = field(default_factory=list)

    @property
    def is_commerce_like(self) -> bool:
        """Whether product pages should be captured for this site."""
        return self.is_recognized_commerce_platform or self.is_ecommerce

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_recognized_commerce_platform": self.is_recognized_commerce_platform,
            "is_ecommerce": self.is_ecommerce,
            "signals": list(self.signals),
        }


@dataclass(frozen=True)
class PopupCandidate:
    """A visible overlay element that looks like a subscription popup."""

    matched_selector: str
    has_email_input: bool = False
    text_preview: str = ""
    css_classes: str = ""
    element_id: str = ""
    width: int = 0
    height: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched_selector": self.matched_selector,
            "has_email_input": self.has_email_input,
            "text_preview": self.text_preview,
            "css_classes": self.css_classes,
            "element_id": self.element_id,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class PopupFinding:
    """Result of popup and email-platform detection. Computed once per site."""

    has_popup: bool = False
    popup_type: PopupType = PopupType.NONE
    email_platform: Optional[str] = None
    email_platform_details: tuple[str, ...] = ()
    popup_details: tuple[PopupCandidate, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_popup": self.has_popup,
            "popup_type": self.popup_type.value,
            "email_platform": self.email_platform,
            "email_platform_details": list(self.email_platform_details),
            "popup_details": [candidate.to_dict() for candidate in self.popup_details],
        }


# ============================================================================
# Capture & Metrics Models
# ============================================================================

@dataclass
class PageCapture:
    """Screenshot and basic metadata for one capture slot."""

    name: str
    screenshot_path: str
    title: str = ""
    url: str = ""
    meta_description: str = ""
    first_heading_text: str = ""
    client_load_timestamp: float = 0.0  # performance.now() at capture, ms

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "screenshot_path": self.screenshot_path,
            "title": self.title,
            "url": self.url,
            "meta_description": self.meta_description,
            "first_heading_text": self.first_heading_text,
            "client_load_timestamp": self.client_load_timestamp,
        }


@dataclass
class PerformanceSnapshot:
    """Navigation timing and DOM counts from a single read."""

    load_time_ms: Optional[int] = None
    dom_content_loaded_ms: Optional[int] = None
    first_paint_ms: Optional[float] = None
    image_count: Optional[int] = None
    link_count: Optional[int] = None
    script_count: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in self.to_dict().values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "load_time_ms": self.load_time_ms,
            "dom_content_loaded_ms": self.dom_content_loaded_ms,
            "first_paint_ms": self.first_paint_ms,
            "image_count": self.image_count,
            "link_count": self.link_count,
            "script_count": self.script_count,
        }


@dataclass
class Issue:
    """A single automated check finding."""

    category: IssueCategory
    description: str

    def to_dict(self) -> dict[str, str]:
        return {"category": self.category.value, "description": self.description}


# ============================================================================
# Aggregates
# ============================================================================

@dataclass
class AuditResult:
    """Everything collected for one audited site.

    A failed audit carries only url, site_name, timestamp and error.
    """

    url: str
    site_name: str
    timestamp: datetime = field(default_factory=_utcnow)
    success: bool = True
    platform: PlatformFinding = field(default_factory=PlatformFinding)
    popups: PopupFinding = field(default_factory=PopupFinding)
    classification: Optional[Classification] = None
    pages: list[PageCapture] = field(default_factory=list)
    metrics: PerformanceSnapshot = field(default_factory=PerformanceSnapshot)
    issues: list[Issue] = field(default_factory=list)
    output_location: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failed(
        cls,
        url: str,
        site_name: str,
        error: str,
        timestamp: Optional[datetime] = None,
    ) -> "AuditResult":
        """Build the error-tagged record for an audit that did not complete."""
        return cls(
            url=url,
            site_name=site_name,
            timestamp=timestamp or _utcnow(),
            success=False,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        if not self.success:
            return {
                "url": self.url,
                "site_name": self.site_name,
                "timestamp": self.timestamp.isoformat(),
                "success": False,
                "error": self.error,
            }

        return {
            "url": self.url,
            "site_name": self.site_name,
            "timestamp": self.timestamp.isoformat(),
            "success": True,
            "platform": self.platform.to_dict(),
            "popups": self.popups.to_dict(),
            "classification": self.classification.value if self.classification else None,
            "pages": [page.to_dict() for page in self.pages],
            "metrics": self.metrics.to_dict(),
            "issues": [issue.to_dict() for issue in self.issues],
            "output_location": self.output_location,
        }


@dataclass
class BatchSummary:
    """Outcome of auditing a list of sites."""

    results: list[AuditResult] = field(default_factory=list)
    interrupted: bool = False
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)

    @property
    def failures(self) -> list[AuditResult]:
        return [result for result in self.results if not result.success]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "interrupted": self.interrupted,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "failures": [
                {"url": result.url, "error": result.error} for result in self.failures
            ],
        }
