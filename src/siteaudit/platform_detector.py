"""Platform and e-commerce detection for a loaded page.

Both checks are probes: they never raise, and a failed probe reads as
"not detected".
"""

import logging
from typing import Optional

from .browser_session import BrowserSession
from .constants import (
    ADD_TO_CART_PHRASE,
    ADD_TO_CART_SELECTOR,
    PLATFORM_SIGNATURES,
    PRICE_SELECTOR,
    SHOP_KEYWORDS,
)
from .models import PlatformFinding

logger = logging.getLogger(__name__)


# Evaluates every signature row uniformly; returns the labels that fired.
_SIGNATURE_SCRIPT = """
(signatures) => {
    const fired = [];
    const scripts = Array.from(document.querySelectorAll('script[src]')).map(s => s.getAttribute('src') || '');
    const links = Array.from(document.querySelectorAll('link[href]')).map(l => l.getAttribute('href') || '');
    const generators = Array.from(document.querySelectorAll('meta[name="generator"]')).map(m => m.getAttribute('content') || '');
    for (const [label, kind, needle] of signatures) {
        let hit = false;
        try {
            if (kind === 'script_src') {
                hit = scripts.some(src => src.includes(needle));
            } else if (kind === 'meta_generator') {
                hit = generators.some(content => content.includes(needle));
            } else if (kind === 'global') {
                hit = typeof window[needle] !== 'undefined';
            } else if (kind === 'link_href') {
                hit = links.some(href => href.includes(needle));
            }
        } catch (e) {
            hit = false;
        }
        if (hit) {
            fired.push(label);
        }
    }
    return fired;
}
"""

_ECOMMERCE_SCRIPT = """
(opts) => {
    const text = ((document.body && document.body.textContent) || '').toLowerCase();
    const hasAddToCart = text.includes(opts.addToCartPhrase)
        || !!document.querySelector(opts.addToCartSelector);
    const hasPrice = !!document.querySelector(opts.priceSelector) || /\\$\\d+/.test(text);
    const hasProduct = opts.shopKeywords.some(keyword => text.includes(keyword));
    return hasAddToCart || (hasPrice && hasProduct);
}
"""


class PlatformDetector:
    """Detects hosted-commerce platforms and general e-commerce signals."""

    def __init__(self, signatures: Optional[list] = None):
        """
        Args:
            signatures: (label, kind, needle) rows; defaults to PLATFORM_SIGNATURES
        """
        self.signatures = list(signatures if signatures is not None else PLATFORM_SIGNATURES)

    async def detect_signals(self, session: BrowserSession) -> list[str]:
        """Return the labels of every signature that fired on the current page."""
        fired = await session.evaluate(
            _SIGNATURE_SCRIPT,
            [list(row) for row in self.signatures],
            default=[],
        )
        if not isinstance(fired, list):
            return []
        return [str(label) for label in fired]

    async def detect_platform(self, session: BrowserSession) -> PlatformFinding:
        """Check the page against the platform signature table.

        Returns:
            PlatformFinding with is_recognized_commerce_platform set if any
            signature fired
        """
        signals = await self.detect_signals(session)
        if signals:
            logger.info(f"Commerce platform detected ({', '.join(signals)})")
        return PlatformFinding(
            is_recognized_commerce_platform=bool(signals),
            signals=signals,
        )

    async def detect_ecommerce(self, session: BrowserSession) -> bool:
        """Heuristic e-commerce check based on cart, price and shop wording."""
        result = await session.evaluate(
            _ECOMMERCE_SCRIPT,
            {
                "addToCartPhrase": ADD_TO_CART_PHRASE,
                "addToCartSelector": ADD_TO_CART_SELECTOR,
                "priceSelector": PRICE_SELECTOR,
                "shopKeywords": SHOP_KEYWORDS,
            },
            default=False,
        )
        return result is True
