"""Downloads the browser build that the installed Playwright drives.

Exposed as ``site-audit --install-browser``.
"""
import logging
import subprocess
import sys
from typing import List

logger = logging.getLogger(__name__)


def install_command(browser: str = "chromium", with_deps: bool = False) -> List[str]:
    """Playwright installer invocation for the running interpreter."""
    command = [sys.executable, "-m", "playwright", "install"]
    if with_deps:
        command.append("--with-deps")
    command.append(browser)
    return command


def install_browser(browser: str = "chromium", with_deps: bool = False) -> bool:
    """Run the Playwright installer.

    Args:
        browser: Browser build to download
        with_deps: Also install the system libraries the browser needs

    Returns:
        True if the browser is ready to launch
    """
    command = install_command(browser, with_deps)
    logger.info(f"Installing {browser} for Playwright: {' '.join(command)}")

    try:
        completed = subprocess.run(command, capture_output=True, text=True)
    except OSError as e:
        logger.error(f"Could not start the Playwright installer: {e}")
        return False

    if completed.returncode != 0:
        detail = (completed.stderr or completed.stdout or "").strip()
        logger.error(f"Playwright installer exited with code {completed.returncode}: {detail}")
        return False

    logger.info(f"{browser} is ready")
    return True
