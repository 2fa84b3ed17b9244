"""Popup and email-marketing platform detection.

Detection is advisory. After a fixed settle delay the page is scanned for
known email integrations and for visible overlays that look like
subscription popups. Any fault yields the default "no popup, no platform"
finding; a false negative is preferable to aborting the audit.
"""

import asyncio
import logging
import re
from typing import Any, Iterable, Optional

from .browser_session import BrowserSession, ProbeResult
from .constants import (
    DISCOUNT_PATTERNS,
    EMAIL_PLATFORMS,
    MIN_POPUP_TEXT_LENGTH,
    POPUP_SELECTORS,
    POPUP_TEXT_PREVIEW_LENGTH,
    SUBSCRIPTION_KEYWORDS,
)
from .models import PopupCandidate, PopupFinding, PopupType

logger = logging.getLogger(__name__)

_DISCOUNT_RE = re.compile("|".join(DISCOUNT_PATTERNS))


_EMAIL_PLATFORM_SCRIPT = """
(platforms) => {
    const sources = Array.from(document.scripts).map(s => (s.src || '') + ' ' + (s.src ? '' : (s.textContent || '').slice(0, 20000)));
    const matched = [];
    for (const platform of platforms) {
        let hit = false;
        try {
            hit = platform.globals.some(name => typeof window[name] !== 'undefined')
                || platform.scripts.some(needle => sources.some(src => src.includes(needle)));
        } catch (e) {
            hit = false;
        }
        if (hit) {
            matched.push(platform.name);
        }
    }
    return matched;
}
"""

# One descriptor per distinct element; the first selector that matched it wins.
# `ancestor` is the index of the nearest matched element containing this one.
_OVERLAY_SCRIPT = """
(selectors) => {
    const indexOf = new Map();
    const matches = [];
    for (const selector of selectors) {
        let elements = [];
        try {
            elements = Array.from(document.querySelectorAll(selector));
        } catch (e) {
            continue;
        }
        for (const el of elements) {
            if (!indexOf.has(el)) {
                indexOf.set(el, matches.length);
                matches.push([el, selector]);
            }
        }
    }
    return matches.map(([el, selector], index) => {
        let ancestor = null;
        for (let parent = el.parentElement; parent; parent = parent.parentElement) {
            if (indexOf.has(parent)) {
                ancestor = indexOf.get(parent);
                break;
            }
        }
        const rect = el.getBoundingClientRect();
        const style = window.getComputedStyle(el);
        const text = (el.textContent || '').replace(/\\s+/g, ' ').trim();
        return {
            index: index,
            ancestor: ancestor,
            selector: selector,
            width: Math.round(rect.width),
            height: Math.round(rect.height),
            display: style.display,
            visibility: style.visibility,
            hasEmailInput: !!el.querySelector('input[type="email"], input[name*="email" i], input[placeholder*="email" i]'),
            text: text,
            classes: typeof el.className === 'string' ? el.className : (el.getAttribute('class') || ''),
            id: el.id || ''
        };
    });
}
"""


def is_visible(descriptor: dict[str, Any]) -> bool:
    """Non-zero rendered size, not display:none, not visibility:hidden."""
    return (
        (descriptor.get("width") or 0) > 0
        and (descriptor.get("height") or 0) > 0
        and descriptor.get("display") != "none"
        and descriptor.get("visibility") != "hidden"
    )


def has_subscription_intent(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in SUBSCRIPTION_KEYWORDS)


def has_discount_text(text: str) -> bool:
    return bool(_DISCOUNT_RE.search(text.lower()))


def qualifies(descriptor: dict[str, Any]) -> bool:
    """Whether a matched overlay element counts as a popup candidate.

    The element must be visible, show subscription intent (an email input or
    a keyword), and carry more than MIN_POPUP_TEXT_LENGTH characters of text.
    """
    text = descriptor.get("text") or ""
    if not is_visible(descriptor):
        return False
    if not (descriptor.get("hasEmailInput") or has_subscription_intent(text)):
        return False
    return len(text) > MIN_POPUP_TEXT_LENGTH


def to_candidate(descriptor: dict[str, Any]) -> PopupCandidate:
    text = descriptor.get("text") or ""
    return PopupCandidate(
        matched_selector=descriptor.get("selector", ""),
        has_email_input=bool(descriptor.get("hasEmailInput")),
        text_preview=text[:POPUP_TEXT_PREVIEW_LENGTH],
        css_classes=descriptor.get("classes") or "",
        element_id=descriptor.get("id") or "",
        width=int(descriptor.get("width") or 0),
        height=int(descriptor.get("height") or 0),
    )


def classify_popup_type(descriptors: Iterable[dict[str, Any]]) -> PopupType:
    """Pick the popup type for a set of qualifying overlay descriptors.

    Email + discount on one element beats email alone, which beats discount
    alone; anything else that qualified is a general popup.
    """
    descriptors = list(descriptors)
    if not descriptors:
        return PopupType.NONE

    signals = [
        (bool(d.get("hasEmailInput")), has_discount_text(d.get("text") or ""))
        for d in descriptors
    ]

    if any(email and discount for email, discount in signals):
        return PopupType.EMAIL_DISCOUNT
    if any(email for email, _ in signals):
        return PopupType.EMAIL_SIGNUP
    if any(discount for _, discount in signals):
        return PopupType.DISCOUNT_OFFER
    return PopupType.GENERAL


def outermost_qualifying(descriptors: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Qualifying descriptors not nested inside another qualifying one.

    A popup usually matches several selectors at different nesting levels
    (wrapper, form, inner container); only the outermost qualifying
    element is reported. Descriptors without ``index``/``ancestor`` keys
    are treated as unnested.
    """
    descriptors = list(descriptors)
    by_index = {d["index"]: d for d in descriptors if d.get("index") is not None}
    qualified = {index for index, d in by_index.items() if qualifies(d)}

    result = []
    for descriptor in descriptors:
        if not qualifies(descriptor):
            continue
        ancestor, visited = descriptor.get("ancestor"), set()
        while ancestor is not None and ancestor not in qualified and ancestor not in visited:
            visited.add(ancestor)
            ancestor = by_index.get(ancestor, {}).get("ancestor")
        if ancestor is None or ancestor not in qualified:
            result.append(descriptor)
    return result


def build_finding(
    descriptors: Iterable[dict[str, Any]],
    platforms: Iterable[str],
) -> PopupFinding:
    """Assemble a PopupFinding from raw overlay descriptors and platform names."""
    qualifying = outermost_qualifying(descriptors)

    unique_platforms: list[str] = []
    for name in platforms:
        if name not in unique_platforms:
            unique_platforms.append(name)

    return PopupFinding(
        has_popup=bool(qualifying),
        popup_type=classify_popup_type(qualifying),
        email_platform=unique_platforms[0] if unique_platforms else None,
        email_platform_details=tuple(unique_platforms),
        popup_details=tuple(to_candidate(d) for d in qualifying),
    )


class PopupDetector:
    """Finds subscription popups and the email platform behind them."""

    def __init__(
        self,
        delay_ms: int = 5000,
        selectors: Optional[list[str]] = None,
        platforms: Optional[list[dict]] = None,
    ):
        """
        Args:
            delay_ms: Settle delay before scanning, so delayed popups can render
            selectors: Overlay selectors; defaults to POPUP_SELECTORS
            platforms: Email platform registry; defaults to EMAIL_PLATFORMS
        """
        self.delay_ms = delay_ms
        self.selectors = list(selectors if selectors is not None else POPUP_SELECTORS)
        self.platforms = list(platforms if platforms is not None else EMAIL_PLATFORMS)

    async def detect_email_platforms(self, session: BrowserSession) -> ProbeResult[list[str]]:
        """Names of every registered email platform present, in registry order."""
        result = await session.probe(_EMAIL_PLATFORM_SCRIPT, self.platforms, default=[])
        names = [str(name) for name in result.value] if isinstance(result.value, list) else []
        return ProbeResult(value=names, fault=result.fault)

    async def scan_overlays(self, session: BrowserSession) -> ProbeResult[list[dict[str, Any]]]:
        """Raw descriptors for every element matched by the overlay selectors."""
        result = await session.probe(_OVERLAY_SCRIPT, self.selectors, default=[])
        found = result.value
        descriptors = [d for d in found if isinstance(d, dict)] if isinstance(found, list) else []
        return ProbeResult(value=descriptors, fault=result.fault)

    async def detect(self, session: BrowserSession) -> PopupFinding:
        """Wait for delayed popups, then scan. Never raises.

        If either scan faults the default finding is returned, so a
        half-read page is never reported.
        """
        try:
            if self.delay_ms > 0:
                logger.debug(f"Waiting {self.delay_ms}ms for popups to appear")
                await asyncio.sleep(self.delay_ms / 1000)

            platforms = await self.detect_email_platforms(session)
            overlays = await self.scan_overlays(session)
            for scan in (platforms, overlays):
                if not scan.ok:
                    logger.warning(f"Popup scan faulted, assuming no popup: {scan.fault}")
                    return PopupFinding()

            finding = build_finding(overlays.value, platforms.value)
        except Exception as e:
            logger.warning(f"Popup detection failed, assuming no popup: {e}")
            return PopupFinding()

        if finding.has_popup:
            logger.info(
                f"Popup detected: {finding.popup_type.value} "
                f"({len(finding.popup_details)} element(s), platform={finding.email_platform})"
            )
        else:
            logger.info(f"No popup detected (platform={finding.email_platform})")

        return finding
