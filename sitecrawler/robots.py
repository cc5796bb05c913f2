"""robots.txt and sitemap.xml loading, done once per run before crawling starts."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup
from protego import Protego

from .constants import ROBOTS_PATH, SITEMAP_PATH

if TYPE_CHECKING:
    from .fetcher import Fetcher


logger = logging.getLogger(__name__)


class RobotsRules:
    """Immutable robots.txt rule set for one origin.

    Matching follows RFC 9309: the longest matching rule wins, Allow wins a
    tie, and `*` / `$` patterns are honoured.
    """

    def __init__(self, robots_url: str, text: str) -> None:
        self.robots_url = robots_url
        self._parser = Protego.parse(text)

    def is_allowed(self, url: str, user_agent: str) -> bool:
        try:
            return bool(self._parser.can_fetch(url, user_agent))
        except Exception:
            # Unparseable URLs never block crawling.
            return True


@dataclass(slots=True)
class SiteResources:
    """Per-run site metadata: robots rules (None when unavailable) and sitemap URLs."""

    robots: RobotsRules | None = None
    sitemap_urls: list[str] = field(default_factory=list)

    @property
    def has_sitemap(self) -> bool:
        return bool(self.sitemap_urls)


def parse_sitemap_locs(text: str) -> list[str]:
    """Return every non-empty `<loc>` text of a sitemap document, in order."""

    soup = BeautifulSoup(text, "xml")
    out: list[str] = []
    for element in soup.find_all("loc"):
        value = element.get_text(strip=True)
        if value:
            out.append(value)
    return out


class SiteLoader:
    """Load robots.txt and sitemap.xml for an origin.

    Both resources fail open: a missing or broken robots.txt allows everything,
    and a missing or broken sitemap yields no URLs.
    """

    def __init__(self, fetcher: "Fetcher") -> None:
        self.fetcher = fetcher

    def load(self, origin: str) -> SiteResources:
        robots = self.load_robots(origin)
        sitemap_urls = self.load_sitemap(origin, robots=robots)
        return SiteResources(robots=robots, sitemap_urls=sitemap_urls)

    def load_robots(self, origin: str) -> RobotsRules | None:
        robots_url = origin.rstrip("/") + ROBOTS_PATH
        result = self.fetcher.fetch_resource(robots_url)
        if not result.ok or not result.body:
            logger.info("No usable robots.txt at %s (%s)", robots_url, result.error or result.status_code)
            return None

        try:
            return RobotsRules(robots_url, result.body)
        except Exception as exc:
            logger.warning("Failed to parse %s: %s", robots_url, exc)
            return None

    def load_sitemap(self, origin: str, *, robots: RobotsRules | None = None) -> list[str]:
        sitemap_url = origin.rstrip("/") + SITEMAP_PATH
        result = self.fetcher.fetch_resource(sitemap_url, robots=robots)
        if not result.ok or not result.body:
            logger.info("No usable sitemap at %s (%s)", sitemap_url, result.error or result.status_code)
            return []

        try:
            urls = parse_sitemap_locs(result.body)
        except Exception as exc:
            logger.warning("Failed to parse %s: %s", sitemap_url, exc)
            return []

        logger.info("Loaded %d URLs from %s", len(urls), sitemap_url)
        return urls


__all__ = [
    "RobotsRules",
    "SiteLoader",
    "SiteResources",
    "parse_sitemap_locs",
]
