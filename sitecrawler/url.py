"""URL normalization, path canonicalization, and link extraction helpers."""

from __future__ import annotations

import re
from typing import Sequence
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .constants import MAX_CONSECUTIVE_SEGMENTS


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
LANGUAGE_SEGMENT_RE = re.compile(r"^[a-z]{2}(-[a-z]{2})?$", re.IGNORECASE)


def is_language_segment(segment: str) -> bool:
    """Return True for locale-looking segments such as `en` or `pt-br`."""

    return bool(LANGUAGE_SEGMENT_RE.match(segment or ""))


def path_segments(path: str) -> list[str]:
    """Split a URL path into its non-empty segments."""

    return [segment for segment in (path or "").split("/") if segment]


def host_from_url(url: str) -> str:
    """Extract the lowercased `host[:port]` of a URL, without userinfo or a default port."""

    try:
        return _normalize_netloc(urlsplit(url), include_userinfo=False)
    except ValueError:
        return ""


def origin_of(url: str) -> str:
    """Return `scheme://host[:port]` for an absolute URL."""

    parsed = urlsplit(url)
    return f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"


def _has_default_port(scheme: str, port: int | None) -> bool:
    if port is None:
        return False
    return (scheme == "http" and port == 80) or (scheme == "https" and port == 443)


def _normalize_netloc(parsed_url, *, include_userinfo: bool = True) -> str:  # urllib.parse.SplitResult
    host = (parsed_url.hostname or "").lower()
    if not host:
        return ""
    if ":" in host:
        host = f"[{host}]"

    userinfo = ""
    if include_userinfo and parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    # Raises ValueError for out-of-range ports; callers treat that as invalid.
    port = parsed_url.port
    if port is not None and not _has_default_port(parsed_url.scheme.lower(), port):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _resolve_dot_segments(segments: list[str]) -> list[str]:
    out: list[str] = []
    for segment in segments:
        if segment == ".":
            continue
        if segment == "..":
            if out:
                out.pop()
            continue
        out.append(segment)
    return out


def canonicalize_path(path: str) -> str:
    """Collapse empty segments and locale segments that repeat the previous one.

    `/en/en/page` becomes `/en/page`; `/docs/docs` is left alone because
    `docs` does not look like a locale code.
    """

    out: list[str] = []
    for segment in _resolve_dot_segments(path_segments(path)):
        if out and is_language_segment(segment) and out[-1].lower() == segment.lower():
            continue
        out.append(segment)
    return "/" + "/".join(out)


def has_excessive_repeated_segments(
    path: str,
    max_consecutive: int = MAX_CONSECUTIVE_SEGMENTS,
) -> bool:
    """Return True when a segment repeats more than `max_consecutive` times in a row."""

    parts = [segment.lower() for segment in path_segments(path)]
    run = 1
    for previous, current in zip(parts, parts[1:]):
        if current == previous:
            run += 1
            if run > max_consecutive:
                return True
        else:
            run = 1
    return False


def normalize_path_for_rules(path: str) -> str:
    """Lowercased path with a leading locale segment removed (`/en/job/1` -> `/job/1`)."""

    parts = path_segments(path)
    if parts and is_language_segment(parts[0]):
        parts = parts[1:]
    return ("/" + "/".join(parts)).lower()


def infer_language_prefix(url: str) -> str:
    """Return the first path segment of `url` if it looks like a locale, else ""."""

    try:
        parts = path_segments(urlsplit(url).path)
    except ValueError:
        return ""
    if parts and is_language_segment(parts[0]):
        return parts[0].lower()
    return ""


def normalize_url(
    url: str | None,
    base_url: str | None = None,
    *,
    include_query: bool = True,
    ignore_hash: bool = True,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str | None:
    """Canonicalize a raw reference into a comparable absolute URL.

    Returns `None` when the reference is not a well-formed http(s) URL or when
    its path looks like a crawler trap (`/a/a/a/a`).
    """

    if url is None:
        return None

    raw = url.strip()
    if not raw:
        return None

    try:
        absolute = urljoin(base_url, raw) if base_url else raw
        parsed = urlsplit(absolute)

        scheme = parsed.scheme.lower()
        if scheme not in {item.lower() for item in allowed_schemes}:
            return None

        netloc = _normalize_netloc(parsed)
    except ValueError:
        return None

    if not netloc:
        return None

    path = canonicalize_path(parsed.path)
    if has_excessive_repeated_segments(path):
        return None

    query = parsed.query if include_query else ""
    fragment = "" if ignore_hash else parsed.fragment

    # Trailing "/", "?" and "#" all go so the result normalizes to itself.
    return urlunsplit((scheme, netloc, path, query, fragment)).rstrip("/?#")


def extract_links_from_html(
    html: str | bytes,
    *,
    base_url: str,
    include_query: bool = True,
    ignore_hash: bool = True,
) -> list[str]:
    """Extract normalized anchor links from HTML.

    Returns links in document order with duplicates and unusable hrefs removed.
    """

    soup = BeautifulSoup(html, "lxml")

    out: list[str] = []
    seen: set[str] = set()

    for element in soup.find_all("a", href=True):
        href = element.get("href")
        if not href:
            continue

        resolved = normalize_url(
            href,
            base_url,
            include_query=include_query,
            ignore_hash=ignore_hash,
        )
        if not resolved or resolved in seen:
            continue

        seen.add(resolved)
        out.append(resolved)

    return out


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "LANGUAGE_SEGMENT_RE",
    "canonicalize_path",
    "extract_links_from_html",
    "has_excessive_repeated_segments",
    "host_from_url",
    "infer_language_prefix",
    "is_language_segment",
    "normalize_path_for_rules",
    "normalize_url",
    "origin_of",
    "path_segments",
]
