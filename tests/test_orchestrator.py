"""Tests for the per-site audit orchestrator."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from siteaudit.models import (
    Classification,
    IssueCategory,
    PlatformFinding,
    PopupCandidate,
    PopupFinding,
    PopupType,
)
from siteaudit.orchestrator import (
    AuditOrchestrator,
    filter_product_links,
    site_name_from_url,
)


def make_orchestrator(settings, commerce=False, popup=False):
    platform_detector = MagicMock()
    platform_detector.detect_platform = AsyncMock(
        return_value=PlatformFinding(
            is_recognized_commerce_platform=commerce,
            signals=["shopify_global"] if commerce else [],
        )
    )
    platform_detector.detect_ecommerce = AsyncMock(return_value=False)

    if popup:
        finding = PopupFinding(
            has_popup=True,
            popup_type=PopupType.EMAIL_SIGNUP,
            email_platform="Klaviyo",
            email_platform_details=("Klaviyo",),
            popup_details=(PopupCandidate(matched_selector='[class*="popup"]', has_email_input=True),),
        )
    else:
        finding = PopupFinding()
    popup_detector = MagicMock()
    popup_detector.detect = AsyncMock(return_value=finding)

    return AuditOrchestrator(
        settings,
        platform_detector=platform_detector,
        popup_detector=popup_detector,
    )


class TestSiteName:
    """Test cases for site_name_from_url."""

    def test_dots_replaced(self):
        assert site_name_from_url("https://www.example.com/shop") == "www_example_com"

    def test_port_dropped(self):
        assert site_name_from_url("http://localhost:8080/") == "localhost"

    def test_unsafe_characters_replaced(self):
        assert site_name_from_url("https://xn--bcher-kva.example") == "xn--bcher-kva_example"


class TestFilterProductLinks:
    """Test cases for product link discovery."""

    def test_keeps_product_paths_only(self):
        hrefs = [
            "https://shop.test/products/a",
            "https://shop.test/about",
            "https://shop.test/product/b",
            "https://shop.test/shop/c",
            "https://shop.test/store/d",
        ]
        assert filter_product_links(hrefs, 10) == [
            "https://shop.test/products/a",
            "https://shop.test/product/b",
            "https://shop.test/shop/c",
            "https://shop.test/store/d",
        ]

    def test_excludes_fragments_and_relative_links(self):
        hrefs = [
            "https://shop.test/products/a#reviews",
            "/products/relative",
            "javascript:void(0)",
            "mailto:shop@shop.test",
            "https://shop.test/products/b",
        ]
        assert filter_product_links(hrefs, 10) == ["https://shop.test/products/b"]

    def test_dedupes_before_cap(self):
        """Duplicates must not consume slots under the cap."""
        hrefs = [
            "https://shop.test/products/a",
            "https://shop.test/products/a",
            "https://shop.test/products/a",
            "https://shop.test/products/b",
            "https://shop.test/products/c",
            "https://shop.test/products/d",
        ]
        assert filter_product_links(hrefs, 3) == [
            "https://shop.test/products/a",
            "https://shop.test/products/b",
            "https://shop.test/products/c",
        ]

    def test_fewer_links_than_cap(self):
        hrefs = ["https://shop.test/products/a", "https://shop.test/products/a"]
        assert filter_product_links(hrefs, 3) == ["https://shop.test/products/a"]

    def test_zero_cap(self):
        assert filter_product_links(["https://shop.test/products/a"], 0) == []


class TestAuditOrchestrator:
    """Test cases for AuditOrchestrator.audit."""

    @pytest.mark.asyncio
    async def test_non_commerce_site_captures_desktop_and_mobile(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)

        result = await orchestrator.audit(fake_session, "https://example.com")

        assert result.success is True
        assert result.error is None
        assert [page.name for page in result.pages] == ["homepage_desktop", "homepage_mobile"]
        assert result.classification is Classification.NO_POPUP
        assert result.metrics.load_time_ms == 1200
        assert result.site_name == "example_com"

    @pytest.mark.asyncio
    async def test_output_grouped_by_classification(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, popup=True)

        result = await orchestrator.audit(fake_session, "https://example.com")

        output_dir = Path(result.output_location)
        assert result.classification is Classification.POPUP_DETECTED
        assert output_dir.parent.name == "popup_detected"
        assert output_dir.name.startswith("example_com_")
        assert output_dir.is_dir()
        assert (output_dir / "homepage_desktop.png").exists()
        assert (output_dir / "homepage_mobile.png").exists()

    @pytest.mark.asyncio
    async def test_no_popup_bucket(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, popup=False)

        result = await orchestrator.audit(fake_session, "https://example.com")

        assert Path(result.output_location).parent.name == "no_popup"

    @pytest.mark.asyncio
    async def test_detection_order(self, settings, fake_session):
        """Platform detection runs before popup detection."""
        orchestrator = make_orchestrator(settings)
        calls = []
        orchestrator.platform_detector.detect_platform.side_effect = (
            lambda session: calls.append("platform") or PlatformFinding()
        )
        orchestrator.popup_detector.detect.side_effect = (
            lambda session: calls.append("popups") or PopupFinding()
        )

        await orchestrator.audit(fake_session, "https://example.com")

        assert calls == ["platform", "popups"]

    @pytest.mark.asyncio
    async def test_commerce_site_captures_capped_unique_products(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, commerce=True)
        fake_session.anchor_hrefs = [
            "https://shop.test/products/a",
            "https://shop.test/products/a",
            "https://shop.test/products/b",
            "https://shop.test/products/c",
            "https://shop.test/products/d",
            "https://shop.test/products/e",
        ]

        result = await orchestrator.audit(fake_session, "https://shop.test")

        assert [page.name for page in result.pages] == [
            "homepage_desktop",
            "product_1_desktop",
            "product_2_desktop",
            "product_3_desktop",
            "homepage_mobile",
        ]
        assert result.pages[1].url == "https://shop.test/products/a"
        assert result.pages[3].url == "https://shop.test/products/c"

    @pytest.mark.asyncio
    async def test_ecommerce_heuristic_triggers_product_branch(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, commerce=False)
        orchestrator.platform_detector.detect_ecommerce.return_value = True
        fake_session.anchor_hrefs = ["https://shop.test/shop/item"]

        result = await orchestrator.audit(fake_session, "https://shop.test")

        assert result.platform.is_ecommerce is True
        assert [page.name for page in result.pages] == [
            "homepage_desktop", "product_1_desktop", "homepage_mobile",
        ]

    @pytest.mark.asyncio
    async def test_failed_product_navigation_is_skipped(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, commerce=True)
        fake_session.anchor_hrefs = [
            "https://shop.test/products/a",
            "https://shop.test/products/broken",
            "https://shop.test/products/c",
        ]
        fake_session.failing_urls = {"https://shop.test/products/broken"}

        result = await orchestrator.audit(fake_session, "https://shop.test")

        assert result.success is True
        assert [page.name for page in result.pages] == [
            "homepage_desktop", "product_1_desktop", "product_2_desktop", "homepage_mobile",
        ]
        assert result.pages[2].url == "https://shop.test/products/c"

    @pytest.mark.asyncio
    async def test_non_commerce_site_skips_product_scan(self, settings, fake_session):
        orchestrator = make_orchestrator(settings, commerce=False)
        fake_session.anchor_hrefs = ["https://shop.test/products/a"]

        result = await orchestrator.audit(fake_session, "https://shop.test")

        assert len(result.pages) == 2
        assert "https://shop.test/products/a" not in fake_session.navigations

    @pytest.mark.asyncio
    async def test_homepage_timeout_produces_failed_result(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)
        fake_session.failing_urls = {"https://down.test"}

        result = await orchestrator.audit(fake_session, "https://down.test")

        assert result.success is False
        assert result.error
        assert "down.test" in result.error
        assert result.pages == []
        assert result.issues == []
        assert result.output_location is None
        orchestrator.popup_detector.detect.assert_not_called()

    @pytest.mark.asyncio
    async def test_screenshot_failure_is_fatal_for_site(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)
        fake_session.fail_screenshots = True

        result = await orchestrator.audit(fake_session, "https://example.com")

        assert result.success is False
        assert "screenshot" in result.error.lower()

    @pytest.mark.asyncio
    async def test_unexpected_exception_never_escapes(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)
        orchestrator.platform_detector.detect_platform.side_effect = ValueError()

        result = await orchestrator.audit(fake_session, "https://example.com")

        assert result.success is False
        assert result.error == "ValueError"

    @pytest.mark.asyncio
    async def test_mobile_capture_uses_mobile_viewport(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)
        desktop = settings.browser.default_viewport
        mobile = settings.browser.mobile_viewport

        await orchestrator.audit(fake_session, "https://example.com")

        assert fake_session.viewport_history[0] == desktop
        assert mobile in fake_session.viewport_history
        assert fake_session.navigations == ["https://example.com", "https://example.com"]

    @pytest.mark.asyncio
    async def test_viewport_restored_after_many_audits(self, settings, fake_session):
        """The session ends in the desktop viewport however many audits ran."""
        orchestrator = make_orchestrator(settings, commerce=True)
        fake_session.anchor_hrefs = ["https://shop.test/products/a"]
        fake_session.failing_urls = {"https://down.test"}

        for url in ["https://a.test", "https://down.test", "https://b.test", "https://c.test"]:
            await orchestrator.audit(fake_session, url)
            assert fake_session.current_viewport == settings.browser.default_viewport

    @pytest.mark.asyncio
    async def test_checks_run_on_homepage(self, settings, fake_session):
        orchestrator = make_orchestrator(settings)
        fake_session.counts["img:not([alt])"] = 2

        result = await orchestrator.audit(fake_session, "http://example.com")

        categories = [issue.category for issue in result.issues]
        assert IssueCategory.ACCESSIBILITY in categories
        assert IssueCategory.SECURITY in categories
