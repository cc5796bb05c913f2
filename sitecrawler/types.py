"""Core record types shared across the crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from .constants import HTML_CONTENT_TYPES


class FetchKind(str, Enum):
    """Which kind of request produced a `FetchResult`."""

    PAGE = "page"
    RESOURCE = "resource"
    PROBE = "probe"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for manifests."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def is_html_content_type(content_type: str | None) -> bool:
    """Return True for HTML and XHTML content types."""

    normalized = (content_type or "").lower()
    return any(kind in normalized for kind in HTML_CONTENT_TYPES)


@dataclass(frozen=True, slots=True)
class PathLimitRule:
    """Cap on how many pages under `path` are ever admitted for fetching."""

    path: str
    max_pages: int

    def to_json(self) -> JSONDict:
        return {"path": self.path, "maxPages": self.max_pages}


@dataclass(slots=True)
class PageRecord:
    """One row of the final report."""

    url: str
    final_url: str
    status: int | None = None
    blocked_by_robots: bool = False

    @property
    def redirected(self) -> bool:
        return self.final_url != self.url

    def to_json(self) -> JSONDict:
        return {
            "url": self.url,
            "finalUrl": self.final_url,
            "status": self.status,
            "blockedByRobots": self.blocked_by_robots,
        }


@dataclass(slots=True)
class FetchResult:
    """Result of attempting one HTTP request."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None = None
    body: str | None = None
    kind: FetchKind = FetchKind.PAGE
    blocked_by_robots: bool = False
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def status_ok(self) -> bool:
        return self.status_code is not None and 200 <= self.status_code < 300

    @property
    def is_html(self) -> bool:
        return is_html_content_type(self.content_type)

    @property
    def ok(self) -> bool:
        """True when the response is usable: 2xx, no error, body present."""

        return (
            self.error is None
            and not self.blocked_by_robots
            and self.status_ok
            and self.body is not None
        )

    @property
    def error_type(self) -> str | None:
        if self.error is None:
            return None
        return self.error.split(":", maxsplit=1)[0].strip() or "Unknown"


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_seen: int = 0
    frontier_skipped_budget: int = 0

    claimed: int = 0
    excluded: int = 0

    fetched_ok: int = 0
    fetched_error: int = 0
    blocked_by_robots: int = 0
    links_found: int = 0

    probed_ok: int = 0
    probed_error: int = 0

    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def finish(self) -> None:
        self.finished_at = utc_now_iso()

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_seen": self.frontier_skipped_seen,
            "frontier_skipped_budget": self.frontier_skipped_budget,
            "claimed": self.claimed,
            "excluded": self.excluded,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "blocked_by_robots": self.blocked_by_robots,
            "links_found": self.links_found,
            "probed_ok": self.probed_ok,
            "probed_error": self.probed_error,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "CrawlStats",
    "FetchKind",
    "FetchResult",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "PageRecord",
    "PathLimitRule",
    "is_html_content_type",
    "utc_now_iso",
]
