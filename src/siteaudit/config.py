"""
Configuration for the site auditor.

Settings are validated Pydantic models. Values come from built-in defaults,
an optional ``local.json`` override file, and environment variables (a
``.env`` file is loaded if present). Keys in the override file may use either
snake_case or the camelCase names of the original JSON settings format.
"""
import copy
import json
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import (
    DEFAULT_LAUNCH_ARGS,
    DESKTOP_USER_AGENT,
    DESKTOP_VIEWPORT,
    MOBILE_VIEWPORT,
)

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)


class _SettingsModel(BaseModel):
    """Base for all settings sections: accept aliases, ignore unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", validate_assignment=True)


class Viewport(_SettingsModel):
    """Browser viewport dimensions in CSS pixels."""

    width: int = Field(ge=100, le=10000)
    height: int = Field(ge=100, le=10000)

    def as_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


class BrowserSettings(_SettingsModel):
    """Browser launch and emulation settings."""

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    default_viewport: Viewport = Field(
        default_factory=lambda: Viewport(**DESKTOP_VIEWPORT),
        alias="defaultViewport",
        description="Desktop viewport every audit starts and ends in"
    )

    mobile_viewport: Viewport = Field(
        default_factory=lambda: Viewport(**MOBILE_VIEWPORT),
        alias="mobileViewport",
        description="Viewport used for the mobile homepage capture"
    )

    launch_args: List[str] = Field(
        default_factory=lambda: list(DEFAULT_LAUNCH_ARGS),
        alias="args",
        description="Additional Chromium launch arguments"
    )

    user_agent: str = Field(
        default=DESKTOP_USER_AGENT,
        alias="userAgent",
        description="User agent sent with every request"
    )


class AuditTimings(_SettingsModel):
    """Per-site audit timing and scope settings."""

    navigation_timeout_ms: int = Field(
        default=30000,
        alias="navigationTimeout",
        description="Page load timeout in milliseconds",
        ge=1000,
        le=300000
    )

    page_load_delay_ms: int = Field(
        default=2000,
        alias="pageLoadDelay",
        description="Fixed wait before each screenshot",
        ge=0
    )

    popup_detection_delay_ms: int = Field(
        default=5000,
        alias="popupDetectionDelay",
        description="Fixed wait before scanning for popups",
        ge=0
    )

    max_product_pages: int = Field(
        default=3,
        alias="maxProductPages",
        description="Maximum number of product pages captured per site",
        ge=0
    )

    delay_between_audits_ms: int = Field(
        default=2000,
        alias="delayBetweenAudits",
        description="Pause between consecutive sites",
        ge=0
    )


class ScreenshotSettings(_SettingsModel):
    """Screenshot format settings."""

    full_page: bool = Field(default=True, alias="fullPage")

    format: Literal["png", "jpeg"] = Field(
        default="png",
        alias="type",
        description="Image format; quality only applies to jpeg"
    )

    quality: Optional[int] = Field(default=None, ge=0, le=100)

    @property
    def extension(self) -> str:
        return "jpg" if self.format == "jpeg" else "png"


class PerformanceSettings(_SettingsModel):
    """Thresholds for the performance checks."""

    slow_load_time_ms: int = Field(default=3000, alias="slowLoadTime", ge=0)
    max_image_count: int = Field(default=50, alias="maxImageCount", ge=0)
    max_script_count: int = Field(default=20, alias="maxScriptCount", ge=0)


class OutputSettings(_SettingsModel):
    """Where and what to write."""

    base_dir: str = Field(default="./audits", alias="baseDir")
    include_raw_data: bool = Field(default=True, alias="includeRawData")
    generate_html: bool = Field(default=True, alias="generateHTML")


class AuditSettings(_SettingsModel):
    """Root settings object passed to every component."""

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    audit: AuditTimings = Field(default_factory=AuditTimings)
    screenshot: ScreenshotSettings = Field(default_factory=ScreenshotSettings)
    performance: PerformanceSettings = Field(default_factory=PerformanceSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)

    def apply_env(self) -> "AuditSettings":
        """Apply SITE_AUDIT_* environment overrides in place.

        Returns:
            self, for chaining
        """
        headless = os.getenv("SITE_AUDIT_HEADLESS")
        if headless is not None:
            self.browser.headless = headless.strip().lower() in ("1", "true", "yes", "on")

        output_dir = os.getenv("SITE_AUDIT_OUTPUT_DIR")
        if output_dir:
            self.output.base_dir = output_dir

        return self


def _section_model(annotation):
    """The settings model a field holds, or None for plain values."""
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def _field_name(model: type, key) -> Optional[str]:
    """Resolve a field name or its alias to the field name."""
    for name, field in model.model_fields.items():
        if key == name or key == field.alias:
            return name
    return None


def merge_overrides(model: type, defaults: dict, overrides: dict) -> dict:
    """Deep-merge override keys (names or aliases) over a defaults dump.

    The result is keyed by field name. Keys the model does not know are
    dropped.
    """
    merged = dict(defaults)
    for key, value in overrides.items():
        name = _field_name(model, key)
        if name is None:
            continue
        section = _section_model(model.model_fields[name].annotation)
        if section is not None and isinstance(value, dict) and isinstance(merged.get(name), dict):
            merged[name] = merge_overrides(section, merged[name], value)
        else:
            merged[name] = value
    return merged


def _error_path(model: type, loc: tuple) -> List[str]:
    """Field-name path of the innermost settings field an error points at."""
    path = []
    for segment in loc:
        if model is None or not isinstance(segment, str):
            break
        name = _field_name(model, segment)
        if name is None:
            break
        path.append(name)
        model = _section_model(model.model_fields[name].annotation)
    return path


def validate_settings(overrides: dict) -> AuditSettings:
    """Build AuditSettings from overrides, defaulting each invalid value.

    Every key that fails validation is reset to its own default and
    logged; valid overrides next to it are kept.
    """
    defaults = AuditSettings().model_dump()
    merged = merge_overrides(AuditSettings, defaults, overrides)

    while True:
        try:
            return AuditSettings.model_validate(merged)
        except ValidationError as e:
            reset = False
            for error in e.errors():
                path = _error_path(AuditSettings, error["loc"])
                if not path:
                    continue
                target, source = merged, defaults
                for name in path[:-1]:
                    target, source = target[name], source[name]
                if target.get(path[-1]) != source[path[-1]]:
                    logger.warning(
                        f"Invalid setting {'.'.join(path)} ({error['msg']}), using default"
                    )
                    target[path[-1]] = copy.deepcopy(source[path[-1]])
                    reset = True
            if not reset:
                raise


class ConfigManager:
    """
    Loads the target list and settings from a configuration directory.

    Expected layout:
        config/
        ├── websites.json   {"websites": ["https://...", ...]}
        └── local.json      optional overrides of AuditSettings
    """

    WEBSITES_FILE = "websites.json"
    LOCAL_SETTINGS_FILE = "local.json"

    def __init__(self, config_dir: str = "config"):
        """
        Initialize the config manager.

        Args:
            config_dir: Directory holding websites.json and local.json
        """
        self.config_dir = Path(config_dir)
        self.websites_path = self.config_dir / self.WEBSITES_FILE
        self.local_settings_path = self.config_dir / self.LOCAL_SETTINGS_FILE

    def load_websites(self) -> List[str]:
        """Load target URLs, returning an empty list if none are configured."""
        if not self.websites_path.exists():
            logger.warning(
                f"{self.websites_path} not found. Create it with a "
                f'{{"websites": [...]}} list of URLs.'
            )
            return []

        try:
            with open(self.websites_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading websites configuration: {e}")
            return []

        websites = data.get("websites", []) if isinstance(data, dict) else data
        if not isinstance(websites, list):
            logger.error(f"'websites' in {self.websites_path} must be a list")
            return []

        return [str(url).strip() for url in websites if str(url).strip()]

    def get_settings(self) -> AuditSettings:
        """Load settings, merging local.json over the defaults.

        Sections and keys missing from local.json keep their defaults, and
        so does any single value that fails validation. An unreadable file,
        or one that is not a JSON object, falls back to the defaults.
        """
        if not self.local_settings_path.exists():
            return AuditSettings().apply_env()

        try:
            with open(self.local_settings_path, "r", encoding="utf-8") as f:
                overrides = json.load(f)
            if not isinstance(overrides, dict):
                raise ValueError(f"{self.local_settings_path} must contain a JSON object")
            settings = validate_settings(overrides)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Using default settings due to configuration error: {e}")
            settings = AuditSettings()

        return settings.apply_env()
