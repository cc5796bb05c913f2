"""Final crawl report and its text/CSV renderings."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .config import CrawlOptions
from .types import JSONDict, PageRecord


CSV_HEADER = ("url", "finalUrl", "status", "blockedByRobots")


@dataclass(slots=True)
class CrawlReport:
    """Result of one crawl run, shaped like the crawl endpoint's response."""

    start_url: str
    origin: str
    visited: int
    from_sitemap: bool
    options: CrawlOptions
    inferred_language_prefix: str = ""
    skipped_by_path_limit: dict[str, int] = field(default_factory=dict)
    urls: list[PageRecord] = field(default_factory=list)

    @property
    def returned(self) -> int:
        return len(self.urls)

    def to_json(self) -> JSONDict:
        return {
            "startUrl": self.start_url,
            "origin": self.origin,
            "counts": {
                "visited": self.visited,
                "returned": self.returned,
                "fromSitemap": self.from_sitemap,
                "skippedByPathLimit": dict(self.skipped_by_path_limit),
            },
            "options": {
                **self.options.to_dict(),
                "inferredLanguagePrefix": self.inferred_language_prefix,
            },
            "urls": [record.to_json() for record in self.urls],
        }

    def summary(self) -> JSONDict:
        """Headline numbers: totals, redirects, broken links, path-limit skips."""

        return {
            "total": self.returned,
            "redirects": sum(1 for record in self.urls if record.redirected),
            "broken": sum(
                1 for record in self.urls if record.status is not None and record.status >= 400
            ),
            "blockedByRobots": sum(1 for record in self.urls if record.blocked_by_robots),
            "skippedByPathLimit": sum(self.skipped_by_path_limit.values()),
            "fromSitemap": self.from_sitemap,
            "visited": self.visited,
        }

    def to_url_lines(self) -> str:
        """One URL per line."""

        return "\n".join(record.url for record in self.urls)

    def to_csv_text(self) -> str:
        """CSV export with every value JSON-quoted; missing status is ""."""

        lines = [",".join(CSV_HEADER)]
        for record in self.urls:
            values = (
                record.url or "",
                record.final_url or "",
                "" if record.status is None else str(record.status),
                "true" if record.blocked_by_robots else "false",
            )
            lines.append(",".join(json.dumps(value, ensure_ascii=False) for value in values))
        return "\n".join(lines)


def build_report(
    *,
    start_url: str,
    origin: str,
    options: CrawlOptions,
    visited: int,
    from_sitemap: bool,
    records: Iterable[PageRecord],
    skipped_by_path_limit: Mapping[str, int] | None = None,
    inferred_language_prefix: str = "",
) -> CrawlReport:
    """Assemble the report with records sorted by URL."""

    return CrawlReport(
        start_url=start_url,
        origin=origin,
        visited=visited,
        from_sitemap=from_sitemap,
        options=options,
        inferred_language_prefix=inferred_language_prefix,
        skipped_by_path_limit=dict(skipped_by_path_limit or {}),
        urls=sorted(records, key=lambda record: record.url),
    )


__all__ = [
    "CSV_HEADER",
    "CrawlReport",
    "build_report",
]
