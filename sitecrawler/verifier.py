"""Optional status-only pass over every reported URL."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable

from .constants import VERIFIER_MAX_CONCURRENCY
from .fetcher import Fetcher
from .types import FetchResult
from .workers import WorkerPool

if TYPE_CHECKING:
    from .robots import RobotsRules
    from .stats import StatsCollector


logger = logging.getLogger(__name__)


class BrokenLinkVerifier:
    """Probe URLs with HEAD (GET on transport failure) at a bounded concurrency."""

    def __init__(
        self,
        fetcher: Fetcher,
        concurrency: int,
        *,
        stats: "StatsCollector | None" = None,
    ) -> None:
        self.fetcher = fetcher
        self.concurrency = max(1, min(concurrency, VERIFIER_MAX_CONCURRENCY))
        self.stats = stats

    def verify(
        self,
        urls: Iterable[str],
        *,
        robots: "RobotsRules | None" = None,
    ) -> dict[str, FetchResult]:
        targets = list(dict.fromkeys(urls))
        if not targets:
            return {}

        results: dict[str, FetchResult] = {}
        lock = threading.Lock()

        def probe_one(url: str) -> None:
            result = self.fetcher.probe(url, robots=robots)
            if self.stats is not None:
                self.stats.record_probe(result)
            logger.debug("Probe %s -> %s", url, result.status_code or result.error)
            with lock:
                results[url] = result

        logger.info("Verifying %d URLs with concurrency=%d", len(targets), self.concurrency)
        with WorkerPool(self.concurrency, probe_one, name="verifier-worker") as pool:
            pool.run_batch(targets)

        return results


__all__ = ["BrokenLinkVerifier"]
