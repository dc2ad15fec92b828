"""
Configuration for webgrab.

Settings can be set via environment variables with the WEBGRAB_ prefix. The
site list is a JSON file of URI strings or objects with per-site options.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from webgrab.exceptions import ConfigurationError, InvalidReferenceError
from webgrab.models import DEFAULT_DEPTH, CrawlPolicy, FrontierEntry
from webgrab.utils.url_utils import canonicalize


# =============================================================================
# Browser Configuration
# =============================================================================


class BrowserType(str, Enum):
    """Supported browsers."""

    FIREFOX = "firefox"
    CHROMIUM = "chromium"

    @classmethod
    def parse(cls, value: "str | BrowserType") -> "BrowserType":
        """Parse a browser name, accepting ``chrome`` for Chromium."""
        if isinstance(value, BrowserType):
            return value
        name = value.strip().lower()
        if name == "chrome":
            return cls.CHROMIUM
        try:
            return cls(name)
        except ValueError:
            allowed = ", ".join([b.value for b in cls] + ["chrome"])
            raise ConfigurationError(
                f"browser should be one of {allowed}, got {value!r}",
                {"browser": value},
            ) from None


class WaitStrategy(str, Enum):
    """Page load wait strategies."""

    LOAD = "load"  # Wait for 'load' event
    DOMCONTENTLOADED = "domcontentloaded"  # Wait for DOMContentLoaded
    NETWORKIDLE = "networkidle"  # Wait until no network activity for 500ms


@dataclass
class RenderConfig:
    """Configuration for browser sessions."""

    browser: BrowserType = BrowserType.FIREFOX
    browser_count: int = 1
    headless: bool = True
    profile: str = ""  # Firefox profile directory
    wait_until: WaitStrategy = WaitStrategy.LOAD
    timeout: float = 60.0  # seconds
    delay: float = 0.0  # seconds to wait after load before harvesting

    def __post_init__(self) -> None:
        self.browser = BrowserType.parse(self.browser)
        if self.browser_count < 1:
            raise ConfigurationError(
                f"browser count must be at least 1, got {self.browser_count}",
                {"browser_count": self.browser_count},
            )
        if self.profile and self.browser != BrowserType.FIREFOX:
            raise ConfigurationError(
                "a browser profile is only supported for firefox",
                {"browser": self.browser.value, "profile": self.profile},
            )


# =============================================================================
# Settings
# =============================================================================


class WebgrabSettings(BaseSettings):
    """Main settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WEBGRAB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Site list
    config_file: str = "config.json"
    references_only: bool = False

    # Browser sessions
    browser: BrowserType = BrowserType.FIREFOX
    browser_count: int = Field(default=1, ge=1)
    profile: str = ""
    delay_ms: int = Field(default=0, ge=0)
    headless: bool = True
    render_timeout_seconds: float = 60.0

    # HTTP
    general_ca: bool = False
    ca_file: str = "ca.crt"
    request_timeout_seconds: float = 30.0

    # Logging
    log_dir: str = "~/logs"
    log_level: str = "INFO"
    log_format: str = "console"

    # Metrics
    metrics_port: int | None = None

    @field_validator("browser", mode="before")
    @classmethod
    def _parse_browser(cls, value: Any) -> Any:
        if isinstance(value, str):
            return BrowserType.parse(value)
        return value


def _compile_patterns(value: Any) -> tuple[re.Pattern, ...]:
    """Compile pattern strings to case-insensitive regexes."""
    if value is None:
        return ()
    if isinstance(value, (str, re.Pattern)):
        value = [value]
    elif not isinstance(value, (list, tuple)):
        raise ValueError(f"patterns must be a string or a list of strings, got {value!r}")
    patterns = []
    for item in value:
        if isinstance(item, re.Pattern):
            patterns.append(item)
        elif isinstance(item, str):
            try:
                patterns.append(re.compile(item, re.IGNORECASE))
            except re.error as e:
                raise ValueError(f"invalid regular expression {item!r}: {e}") from e
        else:
            raise ValueError(f"patterns must be strings, got {item!r}")
    return tuple(patterns)


class SiteSpec(BaseModel):
    """One object entry of the site list, using the site list's key names."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
    )

    site: str = Field(min_length=1)
    get_children: bool = Field(default=True, alias="getChildren")
    also_get_children: tuple[re.Pattern, ...] = Field(default=(), alias="alsoGetChildren")
    dont_get_children: tuple[re.Pattern, ...] = Field(default=(), alias="dontGetChildren")
    expand_children: bool = Field(default=True, alias="expandChildren")
    also_expand_children: tuple[re.Pattern, ...] = Field(default=(), alias="alsoExpandChildren")
    dont_expand_children: tuple[re.Pattern, ...] = Field(default=(), alias="dontExpandChildren")
    depth: int = Field(default=DEFAULT_DEPTH, ge=0)

    @field_validator(
        "also_get_children",
        "dont_get_children",
        "also_expand_children",
        "dont_expand_children",
        mode="before",
    )
    @classmethod
    def _compile(cls, value: Any) -> tuple[re.Pattern, ...]:
        return _compile_patterns(value)

    def to_policy(self) -> CrawlPolicy:
        return CrawlPolicy(
            follow_children=self.get_children,
            depth_remaining=self.depth,
            allow_children=self.also_get_children,
            deny_children=self.dont_get_children,
            expand_children=self.expand_children,
            allow_expand=self.also_expand_children,
            deny_expand=self.dont_expand_children,
        )


def _seed_uri(site: str) -> str:
    """Canonicalize a seed URI so it shares the dedup key of discovered links."""
    try:
        uri = canonicalize(site, site)
    except InvalidReferenceError as e:
        raise ConfigurationError(f"invalid site uri {site!r}: {e.reason}", {"site": site}) from e
    if uri is None:
        raise ConfigurationError(f"invalid site uri {site!r}", {"site": site})
    return uri


def normalize_site_list(site_list: Any) -> list[FrontierEntry]:
    """
    Convert a parsed site list into frontier entries.

    Strings use the default policy; objects override any subset of it.

    Args:
        site_list: Parsed JSON site list.

    Returns:
        Seed entries in site list order.

    Raises:
        ConfigurationError: If the list or any item is malformed.
    """
    if not isinstance(site_list, list):
        raise ConfigurationError(
            f"the site list must be a list, got {type(site_list).__name__}",
        )

    entries = []
    for index, item in enumerate(site_list):
        if isinstance(item, dict):
            if not item.get("site"):
                raise ConfigurationError(
                    f"items in the site list must include the site uri: {item!r}",
                    {"index": index},
                )
        elif not isinstance(item, str):
            raise ConfigurationError(
                f"items in the site list must be strings or objects: {item!r}",
                {"index": index},
            )
        try:
            spec = SiteSpec(site=item) if isinstance(item, str) else SiteSpec.model_validate(item)
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid site list item {index}: {e}",
                {"index": index, "errors": e.errors(include_url=False)},
            ) from e
        entries.append(FrontierEntry(uri=_seed_uri(spec.site), policy=spec.to_policy()))
    return entries


def load_site_list(path: str | Path) -> list[FrontierEntry]:
    """
    Read and normalize a JSON site list file.

    Args:
        path: Path of the JSON file.

    Returns:
        Seed entries.

    Raises:
        ConfigurationError: If the file cannot be read or parsed.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read config file {path}: {e}", {"path": str(path)}) from e
    try:
        site_list = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"config file {path} is not valid JSON: {e}", {"path": str(path)}) from e
    return normalize_site_list(site_list)


@dataclass
class CrawlConfig:
    """Complete crawl job configuration."""

    seeds: list[FrontierEntry]
    references_only: bool = False
    render: RenderConfig = field(default_factory=RenderConfig)
    request_timeout_seconds: float = 30.0
    # True, False, or a path to a CA bundle
    verify: bool | str = True
    metrics_port: int | None = None

    @classmethod
    def from_settings(cls, settings: WebgrabSettings) -> "CrawlConfig":
        """Build a crawl configuration, loading the site list named by the settings."""
        return cls(
            seeds=load_site_list(settings.config_file),
            references_only=settings.references_only,
            render=RenderConfig(
                browser=settings.browser,
                browser_count=settings.browser_count,
                headless=settings.headless,
                profile=settings.profile,
                timeout=settings.render_timeout_seconds,
                delay=settings.delay_ms / 1000,
            ),
            request_timeout_seconds=settings.request_timeout_seconds,
            verify=True if settings.general_ca else settings.ca_file,
            metrics_port=settings.metrics_port,
        )


def load_config(**overrides: Any) -> WebgrabSettings:
    """
    Load settings from environment variables.

    Args:
        **overrides: Values that take precedence over the environment.

    Raises:
        ConfigurationError: If a setting is invalid.
    """
    try:
        return WebgrabSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}", {"errors": e.errors(include_url=False)}) from e
