"""Exception taxonomy for site audits.

Only these errors cross component boundaries. Probe faults never do:
probes collapse them into default values (see ``browser_session.ProbeResult``).
"""

from typing import Optional


class AuditError(Exception):
    """Base class for audit pipeline errors."""


class LaunchError(AuditError):
    """The browser could not be started. Fatal to the whole batch."""


class NavigationError(AuditError):
    """A page could not be loaded (timeout, DNS failure, refused connection).

    Fatal to the current site only.
    """

    def __init__(self, url: str, message: str):
        self.url = url
        super().__init__(f"Navigation to {url} failed: {message}")


class CaptureIOError(AuditError):
    """A screenshot could not be persisted. Fatal to the current site."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        detail = f": {message}" if message else ""
        super().__init__(f"Could not save screenshot to {path}{detail}")
