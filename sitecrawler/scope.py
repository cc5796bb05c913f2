"""Scope and exclusion predicates evaluated on normalized URLs.

Every predicate is pure given the run's options and the normalized start URL.
User-supplied paths are tokenized into segments once, up front, and compared
segment by segment, so path values containing regex metacharacters need no
escaping.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable
from urllib.parse import urlsplit

from .config import CrawlOptions
from .constants import JOB_PATH_KEYWORDS
from .url import host_from_url, path_segments


class ScopeRejection(str, Enum):
    """Why a URL is not admissible."""

    OTHER_HOST = "other_host"
    OUT_OF_START_PATH = "out_of_start_path"
    EXCLUDED_EXTENSION = "excluded_extension"
    EXCLUDED_PATH = "excluded_path"
    JOB_DETAIL_PAGE = "job_detail_page"


class ExcludedPathKind(str, Enum):
    ROOT = "root"
    PREFIX = "prefix"
    SEGMENT = "segment"


@dataclass(frozen=True, slots=True)
class ExcludedPathRule:
    """One compiled `excludePaths` entry.

    - `/` excludes everything.
    - A rule with more than one segment (or a trailing slash, e.g. `/jobs/`)
      matches as a prefix of the full path at a segment boundary.
    - A single segment (`/jobs`) matches that segment anywhere in the path, so
      locale-prefixed paths such as `/en/jobs/42` are covered too.
    """

    raw: str
    kind: ExcludedPathKind
    segments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, raw: str) -> "ExcludedPathRule | None":
        clean = (raw or "").strip().lower()
        if not clean.startswith("/"):
            return None
        if clean == "/":
            return cls(raw=raw, kind=ExcludedPathKind.ROOT)

        segments = tuple(path_segments(clean))
        if not segments:
            return None

        if "/" in clean.lstrip("/"):
            return cls(raw=raw, kind=ExcludedPathKind.PREFIX, segments=segments)
        return cls(raw=raw, kind=ExcludedPathKind.SEGMENT, segments=segments)

    def matches(self, segments: Iterable[str]) -> bool:
        """Match against lowercased path segments."""

        if self.kind == ExcludedPathKind.ROOT:
            return True

        parts = list(segments)
        if self.kind == ExcludedPathKind.PREFIX:
            return tuple(parts[: len(self.segments)]) == self.segments
        return self.segments[0] in parts


def compile_excluded_paths(raw_rules: Iterable[str]) -> tuple[ExcludedPathRule, ...]:
    """Compile user path exclusions, dropping malformed entries."""

    rules = (ExcludedPathRule.parse(raw) for raw in raw_rules)
    return tuple(rule for rule in rules if rule is not None)


def is_within_path_scope(path: str, scope_path: str) -> bool:
    """Segment-boundary containment: `/docs/guide` is within `/docs`, `/docs2` is not."""

    scope = path_segments(scope_path)
    if not scope:
        return True
    return path_segments(path)[: len(scope)] == scope


def has_excluded_extension(url: str, extensions: Iterable[str]) -> bool:
    """Case-insensitive suffix match of the URL string against `extensions`."""

    lower = url.lower()
    return any(lower.endswith(ext) for ext in extensions)


def is_job_detail_page(path: str) -> bool:
    """Heuristic for job/career detail pages.

    A path mentioning a job keyword is a detail page unless it has a single
    segment, which is treated as the listing page (`/jobs`, `/careers`).
    """

    lower = (path or "").lower()
    if not any(keyword in lower for keyword in JOB_PATH_KEYWORDS):
        return False
    return len(path_segments(lower)) > 1


class ScopeFilter:
    """Precompiled scope/exclusion predicates for one crawl run."""

    def __init__(self, options: CrawlOptions, start_url: str) -> None:
        self.options = options
        self.start_url = start_url
        self.start_host = host_from_url(start_url)
        self.start_path_scope = "/" + "/".join(path_segments(urlsplit(start_url).path))
        self.excluded_paths = compile_excluded_paths(options.exclude_paths)

    @property
    def limits_start_path(self) -> bool:
        return self.options.scope_to_start_path and self.start_path_scope != "/"

    def is_same_host(self, url: str) -> bool:
        if not self.options.same_host_only:
            return True
        return host_from_url(url) == self.start_host

    def is_within_start_scope(self, url: str) -> bool:
        if not self.limits_start_path:
            return True
        return is_within_path_scope(urlsplit(url).path, self.start_path_scope)

    def has_excluded_extension(self, url: str) -> bool:
        return has_excluded_extension(url, self.options.exclude_extensions)

    def is_excluded_path(self, url: str) -> bool:
        if not self.excluded_paths:
            return False
        segments = [segment.lower() for segment in path_segments(urlsplit(url).path)]
        return any(rule.matches(segments) for rule in self.excluded_paths)

    def is_job_detail_page(self, url: str) -> bool:
        if not self.options.ignore_job_pages:
            return False
        return is_job_detail_page(urlsplit(url).path)

    def exclusion_reason(self, url: str) -> ScopeRejection | None:
        """Check every predicate except start-path scope."""

        if not self.is_same_host(url):
            return ScopeRejection.OTHER_HOST
        if self.has_excluded_extension(url):
            return ScopeRejection.EXCLUDED_EXTENSION
        if self.is_excluded_path(url):
            return ScopeRejection.EXCLUDED_PATH
        if self.is_job_detail_page(url):
            return ScopeRejection.JOB_DETAIL_PAGE
        return None

    def rejection_reason(self, url: str) -> ScopeRejection | None:
        """Return the first failing predicate, or None when `url` is admissible."""

        if not self.is_within_start_scope(url):
            return ScopeRejection.OUT_OF_START_PATH
        return self.exclusion_reason(url)

    def is_admissible(self, url: str) -> bool:
        return self.rejection_reason(url) is None


__all__ = [
    "ExcludedPathKind",
    "ExcludedPathRule",
    "ScopeFilter",
    "ScopeRejection",
    "compile_excluded_paths",
    "has_excluded_extension",
    "is_job_detail_page",
    "is_within_path_scope",
]
