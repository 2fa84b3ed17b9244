"""Command-line interface for the site auditor."""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from siteaudit.browser_setup import install_browser
from siteaudit.config import AuditSettings, ConfigManager
from siteaudit.errors import LaunchError
from siteaudit.logging_config import setup_logging
from siteaudit.models import BatchSummary
from siteaudit.runner import BatchRunner


def print_targets(urls: List[str]) -> None:
    """Print the list of sites about to be audited."""
    print(f"📊 Found {len(urls)} website(s) to audit:")
    for index, url in enumerate(urls, start=1):
        print(f"   {index}. {url}")
    print("")


def print_summary(summary: BatchSummary, output_dir: str) -> None:
    """Print batch results in a formatted way.

    Args:
        summary: BatchSummary from the runner
        output_dir: Base output directory the audits were written to
    """
    print(f"\n{'=' * 60}")
    print("Audit Summary")
    print(f"{'=' * 60}")
    print(f"  ✅ Succeeded: {summary.succeeded}")
    print(f"  ❌ Failed:    {summary.failed}")

    if summary.interrupted:
        print("  ⏹️  Interrupted before all sites were audited")

    for result in summary.results:
        if result.success:
            bucket = result.classification.value if result.classification else "?"
            print(f"  • {result.url} [{bucket}] -> {result.output_location}")
        else:
            print(f"  • {result.url} FAILED: {result.error}")

    print(f"\n📁 Check {output_dir} for results.")
    print(f"{'=' * 60}\n")


def non_negative_int(value: str) -> int:
    """argparse type for counts that may be zero but not negative."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a whole number, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="site-audit",
        description="Capture screenshots, detect popups and platforms, and report basic SEO issues for websites",
    )
    parser.add_argument(
        "urls",
        nargs="*",
        help="Sites to audit (default: websites listed in <config-dir>/websites.json)",
    )
    parser.add_argument(
        "--config-dir",
        default="config",
        help="Directory containing websites.json and local.json (default: config)",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Base directory for audit output (overrides settings)",
    )
    parser.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window while auditing",
    )
    parser.add_argument(
        "--max-products",
        type=non_negative_int,
        default=None,
        help="Maximum product pages captured per site (overrides settings)",
    )
    parser.add_argument(
        "--install-browser",
        action="store_true",
        help="Download the Chromium build Playwright needs, then exit",
    )
    parser.add_argument(
        "--with-deps",
        action="store_true",
        help="With --install-browser, also install system libraries",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (default: SITE_AUDIT_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file",
    )
    return parser


def apply_overrides(settings: AuditSettings, args: argparse.Namespace) -> AuditSettings:
    """Apply command-line flags on top of loaded settings."""
    if args.output_dir:
        settings.output.base_dir = args.output_dir
    if args.headed:
        settings.browser.headless = False
    if args.max_products is not None:
        settings.audit.max_product_pages = args.max_products
    return settings


def main(argv: Optional[List[str]] = None) -> int:
    """Run the auditor. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    setup_logging(level=args.log_level, log_file=args.log_file)

    if args.install_browser:
        if install_browser(with_deps=args.with_deps):
            print("✅ Browser installed")
            return 0
        print("❌ Browser install failed. Run: python -m playwright install chromium")
        return 1

    print("🔍 Automated Website Auditor")
    print("=============================\n")

    config_manager = ConfigManager(args.config_dir)
    urls = args.urls or config_manager.load_websites()
    settings = apply_overrides(config_manager.get_settings(), args)

    if not urls:
        print("❌ No websites found to audit.")
        print(f"📝 Pass URLs as arguments or add them to {config_manager.websites_path}.")
        return 1

    print_targets(urls)

    runner = BatchRunner(settings)

    def handle_interrupt(signum, frame):
        """First signal stops gracefully; a second one aborts."""
        if runner.stop_requested:
            raise KeyboardInterrupt
        print("\n⏹️  Audit interrupted by user, finishing current site...")
        runner.request_stop()

    signal.signal(signal.SIGINT, handle_interrupt)
    signal.signal(signal.SIGTERM, handle_interrupt)

    try:
        summary = asyncio.run(runner.run(urls))
    except LaunchError as e:
        print(f"❌ Audit process failed: {e}")
        return 1

    print_summary(summary, settings.output.base_dir)

    if summary.total > 0 and summary.succeeded == 0:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
