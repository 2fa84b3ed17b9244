"""Tests for ReportWriter."""

import json

import pytest

from siteaudit.config import OutputSettings
from siteaudit.models import (
    AuditResult,
    Classification,
    Issue,
    IssueCategory,
    PageCapture,
    PerformanceSnapshot,
    PopupCandidate,
    PopupFinding,
    PopupType,
)
from siteaudit.report_writer import HTML_REPORT_NAME, JSON_REPORT_NAME, ReportWriter


@pytest.fixture
def result(tmp_path):
    output_dir = tmp_path / "popup_detected" / "shop_test_1700000000000"
    output_dir.mkdir(parents=True)
    return AuditResult(
        url="https://shop.test",
        site_name="shop_test",
        popups=PopupFinding(
            has_popup=True,
            popup_type=PopupType.EMAIL_DISCOUNT,
            email_platform="Klaviyo",
            email_platform_details=("Klaviyo", "Privy"),
            popup_details=(
                PopupCandidate(
                    matched_selector='[class*="popup"]',
                    has_email_input=True,
                    text_preview="<b>Get 10% off</b>",
                    width=600,
                    height=400,
                ),
            ),
        ),
        classification=Classification.POPUP_DETECTED,
        pages=[PageCapture("homepage_desktop", str(output_dir / "homepage_desktop.png"), title="Shop")],
        metrics=PerformanceSnapshot(load_time_ms=12345, image_count=12),
        issues=[Issue(IssueCategory.SEO, "Missing meta description")],
        output_location=str(output_dir),
    )


class TestReportWriter:
    """Test cases for report output."""

    def test_writes_json_and_html(self, result):
        written = ReportWriter().write(result)

        assert set(written) == {"json", "html"}
        data = json.loads(written["json"].read_text(encoding="utf-8"))
        assert written["json"].name == JSON_REPORT_NAME
        assert data["classification"] == "PopupDetected"
        assert data["popups"]["popup_type"] == "Email + Discount"
        assert data["issues"] == [{"category": "SEO", "description": "Missing meta description"}]

        html = written["html"].read_text(encoding="utf-8")
        assert written["html"].name == HTML_REPORT_NAME
        assert "https://shop.test" in html
        assert "12,345ms" in html
        assert "Missing meta description" in html
        assert 'src="homepage_desktop.png"' in html
        assert "Privy" in html

    def test_html_escapes_page_text(self, result):
        html = ReportWriter().write(result)["html"].read_text(encoding="utf-8")

        assert "<b>Get 10% off</b>" not in html
        assert "&lt;b&gt;Get 10% off&lt;/b&gt;" in html

    def test_html_disabled(self, result, tmp_path):
        writer = ReportWriter(OutputSettings(generate_html=False))

        written = writer.write(result)

        assert set(written) == {"json"}
        assert not (tmp_path / HTML_REPORT_NAME).exists()

    def test_raw_data_disabled(self, result):
        written = ReportWriter(OutputSettings(include_raw_data=False)).write(result)
        assert set(written) == {"html"}

    def test_failed_result_rejected(self):
        failed = AuditResult.failed("https://down.test", "down_test", "timed out")

        with pytest.raises(ValueError):
            ReportWriter().write(failed)

    def test_missing_metrics_render_as_na(self, result):
        result.metrics = PerformanceSnapshot()
        html = ReportWriter().write(result)["html"].read_text(encoding="utf-8")
        assert "N/A" in html

    def test_missing_directory_raises_os_error(self, result, tmp_path):
        result.output_location = str(tmp_path / "gone")

        with pytest.raises(OSError):
            ReportWriter().write(result)
