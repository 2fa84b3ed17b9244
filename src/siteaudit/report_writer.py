"""Report writer for audit results.

Writes, into each site's output directory:
    audit_data.json     full AuditResult (machine-readable)
    audit_report.html   rendered report (human-readable)
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import OutputSettings
from .models import AuditResult

logger = logging.getLogger(__name__)

JSON_REPORT_NAME = "audit_data.json"
HTML_REPORT_NAME = "audit_report.html"


class ReportWriter:
    """Renders AuditResults to JSON and HTML files."""

    def __init__(
        self,
        output_settings: Optional[OutputSettings] = None,
        template_dir: Optional[str] = None,
    ):
        """Initialize report writer.

        Args:
            output_settings: Which report files to produce
            template_dir: Directory containing Jinja2 templates; defaults to
                the templates shipped with the package
        """
        self.output_settings = output_settings or OutputSettings()

        template_path = Path(template_dir) if template_dir else Path(__file__).parent / "templates"
        self.env = Environment(
            loader=FileSystemLoader(str(template_path)),
            autoescape=select_autoescape(["html"]),
        )
        self.env.filters['format_number'] = self._format_number
        self.env.filters['basename'] = os.path.basename

    def _format_number(self, value):
        """Format number with thousand separators."""
        try:
            return "{:,}".format(int(value))
        except (ValueError, TypeError):
            return value

    def write(self, result: AuditResult) -> Dict[str, Path]:
        """Write the configured report files for a successful audit.

        Args:
            result: A successful AuditResult with output_location set

        Returns:
            Mapping of report kind ('json', 'html') to written path

        Raises:
            ValueError: If the result has no output location
            OSError: If a report file cannot be written
        """
        if not result.success or not result.output_location:
            raise ValueError(f"No output location for audit of {result.url}")

        output_dir = Path(result.output_location)
        data = result.to_dict()
        written: Dict[str, Path] = {}

        if self.output_settings.include_raw_data:
            json_path = output_dir / JSON_REPORT_NAME
            self._save_json(json_path, data)
            written["json"] = json_path

        if self.output_settings.generate_html:
            html_path = output_dir / HTML_REPORT_NAME
            html_path.write_text(self.render_html(data), encoding="utf-8")
            written["html"] = html_path

        logger.info(f"Reports saved to {output_dir}")
        return written

    def render_html(self, data: Dict[str, Any]) -> str:
        """Render the HTML report for a serialized AuditResult."""
        template = self.env.get_template(HTML_REPORT_NAME)
        return template.render(audit=data)

    def _save_json(self, path: Path, data: Dict[str, Any]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
