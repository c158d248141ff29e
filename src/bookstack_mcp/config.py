"""Configuration management for bookstack-mcp.

This module contains the style configuration, the API credential loader and
all configurable constants. Magic numbers are documented here rather than
scattered throughout the codebase.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(environ: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _parse_keywords(raw: str) -> tuple[str, ...]:
    """Split a comma-separated keyword list, keeping the configured casing."""
    return tuple(k.strip() for k in raw.split(",") if k.strip())


# =============================================================================
# Style Guide
# =============================================================================


class StyleConfig(BaseModel):
    """Formatting rules applied when assembling a page.

    Immutable once built. Construct it with from_env() at call time and pass it
    down explicitly; nothing else in the package reads style variables.
    """

    model_config = ConfigDict(frozen=True)

    heading_level_1: str = "##"
    heading_level_2: str = "###"
    logo_markdown: str = ""

    info_prefix: str = ":information_source: **Info:** "
    warning_prefix: str = ":warning: **Warning:** "
    success_prefix: str = ":white_check_mark: **Success:** "
    danger_prefix: str = ":x: **Danger:** "

    legal_footer_markdown: str = ""
    auto_legal_footer_enabled: bool = False
    # strftime format of the "Last modified/created" footer line
    timestamp_format: str = "%Y-%m-%d %H:%M"

    auto_tags_enabled: bool = False
    auto_tags_keywords: tuple[str, ...] = Field(default_factory=tuple)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "StyleConfig":
        """Build the style configuration from environment variables.

        Unset variables fall back to the field defaults. Empty strings are kept
        for the optional blocks (logo, footer) so they can be switched off.
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def _text(name: str, default: str) -> str:
            value = env.get(name)
            return default if value is None else value

        def _marker(name: str, default: str) -> str:
            value = env.get(name, "").strip()
            return value or default

        return cls(
            heading_level_1=_marker("STYLEGUIDE_HEADING_LEVEL_1", defaults.heading_level_1),
            heading_level_2=_marker("STYLEGUIDE_HEADING_LEVEL_2", defaults.heading_level_2),
            logo_markdown=_text("STYLEGUIDE_LOGO_MARKDOWN", defaults.logo_markdown),
            info_prefix=_text("STYLEGUIDE_INFO_PREFIX", defaults.info_prefix),
            warning_prefix=_text("STYLEGUIDE_WARN_PREFIX", defaults.warning_prefix),
            success_prefix=_text("STYLEGUIDE_SUCCESS_PREFIX", defaults.success_prefix),
            danger_prefix=_text("STYLEGUIDE_DANGER_PREFIX", defaults.danger_prefix),
            legal_footer_markdown=_text("STYLEGUIDE_LEGAL_FOOTER_MD", defaults.legal_footer_markdown),
            auto_legal_footer_enabled=_env_flag(env, "AUTO_LEGAL_FOOTER_ENABLED"),
            timestamp_format=_marker("STYLEGUIDE_TIMESTAMP_FORMAT", defaults.timestamp_format),
            auto_tags_enabled=_env_flag(env, "AUTO_TAGS_ENABLED"),
            auto_tags_keywords=_parse_keywords(env.get("AUTO_TAGS_KEYWORDS", "")),
        )


# =============================================================================
# BookStack API
# =============================================================================


@dataclass(frozen=True)
class ApiSettings:
    """Connection settings for the BookStack REST API."""

    base_url: str
    token_id: str
    token_secret: str
    timeout: float = 30.0


def get_api_settings(environ: Mapping[str, str] | None = None) -> ApiSettings:
    """Read BookStack credentials from the environment.

    Raises:
        ConfigurationError: If the URL, token id or token secret is missing.
    """
    env = os.environ if environ is None else environ
    required = {
        "BOOKSTACK_API_URL": env.get("BOOKSTACK_API_URL", "").strip(),
        "BOOKSTACK_API_TOKEN": env.get("BOOKSTACK_API_TOKEN", "").strip(),
        "BOOKSTACK_API_KEY": env.get("BOOKSTACK_API_KEY", "").strip(),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(
            "BookStack API is not configured. Missing environment variables: "
            + ", ".join(missing),
            missing,
        )

    timeout_raw = env.get("BOOKSTACK_TIMEOUT", "").strip()
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
    except ValueError:
        raise ConfigurationError(f"BOOKSTACK_TIMEOUT must be a number, got {timeout_raw!r}")

    return ApiSettings(
        base_url=required["BOOKSTACK_API_URL"].rstrip("/"),
        token_id=required["BOOKSTACK_API_TOKEN"],
        token_secret=required["BOOKSTACK_API_KEY"],
        timeout=timeout,
    )


def get_template_tag(environ: Mapping[str, str] | None = None) -> str:
    """Tag name that marks template pages (used by search_templates)."""
    env = os.environ if environ is None else environ
    return env.get("BOOKSTACK_TEMPLATE_TAG", "").strip() or DEFAULT_TEMPLATE_TAG


# HTTP request timeout in seconds. Timeouts surface as REMOTE_UNAVAILABLE errors.
DEFAULT_TIMEOUT = 30.0

# Tag used to find template pages when BOOKSTACK_TEMPLATE_TAG is unset
DEFAULT_TEMPLATE_TAG = "template"


# =============================================================================
# Search Limits
# =============================================================================

# Default number of results per search page
DEFAULT_SEARCH_COUNT = 10

# BookStack caps search pages at 100 results
MAX_SEARCH_COUNT = 100

# Characters of preview_html shown per hit in search listings
SEARCH_PREVIEW_LENGTH = 200


# =============================================================================
# Duplicate Detection
# =============================================================================

# Minimum title similarity (0-1) to report an existing item as a duplicate.
# 0.7 tolerates small edits. Containment only passes when the shorter title
# covers most of the longer one ("Alps" vs "Alps Overview" scores 4/13).
DEFAULT_SIMILARITY_THRESHOLD = 0.7

# Number of search hits scored per duplicate check. Only one search page is
# requested; duplicate detection never paginates.
DUPLICATE_SEARCH_COUNT = 20

# Characters of preview text shown per candidate in duplicate reports
DUPLICATE_PREVIEW_LENGTH = 100

# Entries requested when listing all books or shelves. BookStack accepts at
# most 500 per request; duplicate detection uses this single page only.
LIST_ALL_COUNT = 500
