"""End-to-end crawl orchestration: load site resources, drain the frontier, report."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from .config import CrawlOptions
from .constants import DEFAULT_USER_AGENT
from .fetcher import Fetcher
from .frontier import Frontier
from .ledger import PathBudgetLedger
from .report import CrawlReport, build_report
from .robots import RobotsRules, SiteLoader, SiteResources
from .scope import ScopeFilter
from .stats import StatsCollector
from .types import PageRecord
from .url import extract_links_from_html, infer_language_prefix, normalize_url, origin_of
from .verifier import BrokenLinkVerifier
from .workers import WorkerPool


logger = logging.getLogger(__name__)


class Crawler:
    """Run one site crawl per `run()` call.

    Every run builds its own `Frontier`, `PathBudgetLedger`, and `ScopeFilter`;
    nothing is shared between runs except the (optional) injected fetcher and
    stats collector.
    """

    def __init__(
        self,
        options: CrawlOptions | None = None,
        *,
        fetcher: Fetcher | None = None,
        stats: StatsCollector | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.options = options or CrawlOptions()
        self.stats = stats or StatsCollector()
        self.user_agent = user_agent

        self._fetcher = fetcher

    def run(self, start_url: str) -> CrawlReport:
        """Crawl from `start_url` and return the sorted report.

        Raises ValueError("Invalid URL") when the start URL cannot be normalized.
        """

        options = self.options
        start = normalize_url(
            start_url,
            include_query=options.include_query,
            ignore_hash=options.ignore_hash,
        )
        if not start:
            raise ValueError("Invalid URL")

        origin = origin_of(start)
        owns_fetcher = self._fetcher is None
        fetcher = self._fetcher or Fetcher(options, user_agent=self.user_agent)

        try:
            return self._run(start, origin, fetcher)
        finally:
            if owns_fetcher:
                fetcher.close()

    def _run(self, start: str, origin: str, fetcher: Fetcher) -> CrawlReport:
        options = self.options
        scope = ScopeFilter(options, start)
        ledger = PathBudgetLedger(options.path_limits)
        frontier = Frontier(options, scope, ledger)

        logger.info(
            "Starting crawl: start=%s, max_pages=%d, concurrency=%d",
            start,
            options.max_pages,
            options.concurrency,
        )

        resources = SiteLoader(fetcher).load(origin)
        seeds = self._seed_urls(start, scope, resources)
        self.stats.record_enqueue_many(frontier.seed(seeds))
        logger.info(
            "Seeded frontier with %d URLs (from_sitemap=%s)",
            len(seeds),
            resources.has_sitemap,
        )

        def process(url: str) -> None:
            self._process_url(url, frontier, scope, fetcher, resources.robots)

        with WorkerPool(
            options.concurrency,
            process,
            name="crawler-worker",
            on_error=lambda url, exc: self.stats.record_worker_error(),
        ) as pool:
            while frontier.should_continue():
                batch = frontier.take_batch(options.batch_size)
                pool.run_batch(batch)
                logger.debug(
                    "Batch done: size=%d, visited=%d, pending=%d",
                    len(batch),
                    frontier.visited_count(),
                    frontier.pending_count(),
                )

        if options.broken_link_check:
            self._verify_links(frontier, fetcher, resources.robots)

        self.stats.record_frontier_snapshot(frontier.snapshot())
        self.stats.finish()

        report = build_report(
            start_url=start,
            origin=origin,
            options=options,
            visited=frontier.visited_count(),
            from_sitemap=resources.has_sitemap,
            records=frontier.records(),
            skipped_by_path_limit=ledger.skipped_by_rule(),
            inferred_language_prefix=infer_language_prefix(start),
        )
        logger.info(
            "Crawl finished: visited=%d, returned=%d, from_sitemap=%s",
            report.visited,
            report.returned,
            report.from_sitemap,
        )
        return report

    def _seed_urls(
        self,
        start: str,
        scope: ScopeFilter,
        resources: SiteResources,
    ) -> list[str]:
        if not resources.has_sitemap:
            return [start]

        seeds: list[str] = []
        for raw in resources.sitemap_urls:
            normalized = normalize_url(
                raw,
                include_query=self.options.include_query,
                ignore_hash=self.options.ignore_hash,
            )
            if normalized and scope.is_within_start_scope(normalized):
                seeds.append(normalized)
        return seeds

    def _process_url(
        self,
        url: str,
        frontier: Frontier,
        scope: ScopeFilter,
        fetcher: Fetcher,
        robots: RobotsRules | None,
    ) -> None:
        claim = frontier.claim(url)
        self.stats.record_claim(claim)
        if not claim.accepted:
            logger.debug("Skipped %s: %s", url, claim.status.value)
            return

        reason = scope.exclusion_reason(url)
        if reason is not None:
            self.stats.record_rejection(reason, claimed=True)
            logger.debug("Excluded %s: %s", url, reason.value)
            return

        result = fetcher.fetch_page(url, robots=robots)
        frontier.record(
            PageRecord(
                url=url,
                final_url=result.final_url or url,
                status=result.status_code if self.options.broken_link_check else None,
                blocked_by_robots=result.blocked_by_robots,
            )
        )

        if not result.ok:
            self.stats.record_fetch(result)
            logger.debug("Fetched %s without links: %s", url, result.error or result.status_code)
            return

        links = extract_links_from_html(
            result.body or "",
            base_url=result.final_url or url,
            include_query=self.options.include_query,
            ignore_hash=self.options.ignore_hash,
        )
        self.stats.record_fetch(result, links_found=len(links))

        admissible: list[str] = []
        for link in links:
            rejection = scope.rejection_reason(link)
            if rejection is not None:
                self.stats.record_rejection(rejection)
                continue
            admissible.append(link)

        self.stats.record_enqueue_many(frontier.offer(admissible))
        logger.debug("Fetched %s: %d links, %d admissible", url, len(links), len(admissible))

    def _verify_links(
        self,
        frontier: Frontier,
        fetcher: Fetcher,
        robots: RobotsRules | None,
    ) -> None:
        urls = sorted(record.url for record in frontier.records())
        verifier = BrokenLinkVerifier(fetcher, self.options.concurrency, stats=self.stats)
        for url, result in verifier.verify(urls, robots=robots).items():
            frontier.update_record(
                url,
                final_url=result.final_url or url,
                status=result.status_code,
                blocked_by_robots=result.blocked_by_robots,
            )


def crawl(
    start_url: str,
    options: CrawlOptions | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> CrawlReport:
    """Convenience wrapper: build options (from a camelCase mapping if needed) and run."""

    if options is None or isinstance(options, CrawlOptions):
        resolved = options
    else:
        resolved = CrawlOptions.from_dict(options)
    return Crawler(resolved, **kwargs).run(start_url)


__all__ = [
    "Crawler",
    "crawl",
]
