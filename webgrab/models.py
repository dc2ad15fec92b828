"""
Core data models for webgrab.

These models are shared by the frontier, the crawl driver and the fetch capability.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from webgrab.exceptions import ConfigurationError

# Crawl depth given to seeds that do not set one
DEFAULT_DEPTH = 100

PATTERN_FIELDS = ("allow_children", "deny_children", "allow_expand", "deny_expand")


# =============================================================================
# Policy Models
# =============================================================================


@dataclass(frozen=True)
class CrawlPolicy:
    """
    How the children of a frontier entry are handled.

    Patterns are compiled regular expressions tested with ``search`` against
    the candidate child URI. They are shared between a parent policy and the
    policies derived from it.
    """

    follow_children: bool = True
    depth_remaining: int = DEFAULT_DEPTH
    allow_children: tuple[re.Pattern, ...] = ()
    deny_children: tuple[re.Pattern, ...] = ()
    expand_children: bool = True
    allow_expand: tuple[re.Pattern, ...] = ()
    deny_expand: tuple[re.Pattern, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.depth_remaining, bool) or not isinstance(self.depth_remaining, int):
            raise ConfigurationError(
                f"depth must be an integer, got {self.depth_remaining!r}",
                {"depth_remaining": self.depth_remaining},
            )
        if self.depth_remaining < 0:
            raise ConfigurationError(
                f"depth must not be negative, got {self.depth_remaining}",
                {"depth_remaining": self.depth_remaining},
            )
        for name in PATTERN_FIELDS:
            patterns = getattr(self, name)
            if not isinstance(patterns, tuple):
                # Accept any iterable of patterns but store a tuple
                patterns = tuple(patterns)
                object.__setattr__(self, name, patterns)
            for pattern in patterns:
                if not isinstance(pattern, re.Pattern):
                    raise ConfigurationError(
                        f"{name} entries must be compiled patterns, got {pattern!r}",
                        {"field": name},
                    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (patterns as their source strings)."""
        return {
            "follow_children": self.follow_children,
            "depth_remaining": self.depth_remaining,
            "expand_children": self.expand_children,
            **{name: [p.pattern for p in getattr(self, name)] for name in PATTERN_FIELDS},
        }


@dataclass(frozen=True)
class FrontierEntry:
    """A URI waiting to be fetched, with the policy for its children."""

    uri: str
    policy: CrawlPolicy = field(default_factory=CrawlPolicy)


@dataclass(frozen=True)
class ChildDecision:
    """Outcome of admitting a discovered child link."""

    policy: CrawlPolicy
    # False when the child is only reported (references-only mode at depth 0)
    enqueue: bool = True


@dataclass
class AdmissionResult:
    """Counts from admitting one page's references into the frontier."""

    admitted: int = 0
    duplicates: int = 0
    rejected: int = 0
    referenced: int = 0

    @property
    def total(self) -> int:
        return self.admitted + self.duplicates + self.rejected + self.referenced


# =============================================================================
# Fetch Models
# =============================================================================


@dataclass(frozen=True)
class RawLink:
    """An anchor's raw href together with the document URI it was found on."""

    href: str | None
    base_uri: str


@dataclass
class FetchOutcome:
    """Result of fetching one URI."""

    uri: str
    content_type: str | None
    document_uri: str | None = None
    raw_links: list[RawLink] = field(default_factory=list)

    @classmethod
    def downloaded(cls, uri: str, content_type: str | None) -> "FetchOutcome":
        """Create an outcome for non-HTML content (no links)."""
        return cls(uri=uri, content_type=content_type, document_uri=uri)

    @classmethod
    def rendered(
        cls,
        uri: str,
        content_type: str | None,
        document_uri: str,
        hrefs: list[str | None],
    ) -> "FetchOutcome":
        """Create an outcome for a rendered HTML page."""
        return cls(
            uri=uri,
            content_type=content_type,
            document_uri=document_uri,
            raw_links=[RawLink(href=href, base_uri=document_uri) for href in hrefs],
        )
