"""Per-run crawl state: pending frontier, visited set, and page records."""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .config import CrawlOptions
from .ledger import PathBudgetLedger
from .scope import ScopeFilter
from .types import PageRecord, PathLimitRule


class EnqueueStatus(str, Enum):
    """Result status for frontier offers and claims."""

    ENQUEUED = "enqueued"
    CLAIMED = "claimed"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_GLOBAL_BUDGET = "skipped_global_budget"
    SKIPPED_PATH_BUDGET = "skipped_path_budget"


@dataclass(frozen=True, slots=True)
class EnqueueResult:
    """Outcome of one offer or claim attempt."""

    status: EnqueueStatus
    url: str
    rule: PathLimitRule | None = None

    @property
    def accepted(self) -> bool:
        return self.status in {EnqueueStatus.ENQUEUED, EnqueueStatus.CLAIMED}


class Frontier:
    """Crawl state shared by the workers of one run.

    - `pending` keeps insertion order, so batches are taken oldest first.
    - A URL is marked visited when claimed, before it is fetched; concurrent
      discoveries of the same URL therefore lead to a single fetch.
    - `offer` keeps visited + pending within `max_pages`.
    """

    def __init__(
        self,
        options: CrawlOptions,
        scope: ScopeFilter,
        ledger: PathBudgetLedger | None = None,
    ) -> None:
        self.options = options
        self.scope = scope
        self.ledger = ledger or PathBudgetLedger(options.path_limits)

        self._lock = threading.Lock()

        self._pending: dict[str, None] = {}
        self._visited: set[str] = set()
        self._blocked: set[str] = set()
        self._records: dict[str, PageRecord] = {}

        self._counts: dict[str, int] = defaultdict(int)

    def seed(self, urls: Iterable[str]) -> list[EnqueueResult]:
        """Queue initial URLs. Seeds are not bounded by the page budget."""

        results: list[EnqueueResult] = []
        with self._lock:
            for url in urls:
                if url in self._pending:
                    results.append(EnqueueResult(EnqueueStatus.SKIPPED_SEEN, url))
                    continue
                self._pending[url] = None
                self._counts["seeded"] += 1
                results.append(EnqueueResult(EnqueueStatus.ENQUEUED, url))
        return results

    def take_batch(self, max_items: int) -> list[str]:
        """Remove and return up to `max_items` pending URLs, oldest first."""

        if max_items <= 0:
            raise ValueError("max_items must be > 0")

        with self._lock:
            batch: list[str] = []
            for url in self._pending:
                if len(batch) >= max_items:
                    break
                batch.append(url)
            for url in batch:
                del self._pending[url]
            return batch

    def claim(self, url: str) -> EnqueueResult:
        """Atomically decide whether this worker may process `url`.

        Order: visited/blocked, start-path scope, global budget, path budget.
        A claimed URL counts as visited whatever happens to it afterwards.
        """

        with self._lock:
            if url in self._visited or url in self._blocked:
                status = EnqueueStatus.SKIPPED_SEEN
            elif not self.scope.is_within_start_scope(url):
                status = EnqueueStatus.SKIPPED_OUT_OF_SCOPE
            elif len(self._visited) >= self.options.max_pages:
                status = EnqueueStatus.SKIPPED_GLOBAL_BUDGET
            else:
                decision = self.ledger.admit(url)
                if not decision.admitted:
                    self._blocked.add(url)
                    self._counts["claim_" + EnqueueStatus.SKIPPED_PATH_BUDGET.value] += 1
                    return EnqueueResult(EnqueueStatus.SKIPPED_PATH_BUDGET, url, decision.rule)

                self._visited.add(url)
                self._counts["claim_" + EnqueueStatus.CLAIMED.value] += 1
                return EnqueueResult(EnqueueStatus.CLAIMED, url, decision.rule)

            self._counts["claim_" + status.value] += 1
            return EnqueueResult(status, url)

    def offer(self, urls: Iterable[str]) -> list[EnqueueResult]:
        """Queue newly discovered links while visited + pending stays under budget."""

        results: list[EnqueueResult] = []
        with self._lock:
            for url in urls:
                if len(self._visited) + len(self._pending) >= self.options.max_pages:
                    results.append(EnqueueResult(EnqueueStatus.SKIPPED_GLOBAL_BUDGET, url))
                    break
                if url in self._blocked:
                    status = EnqueueStatus.SKIPPED_PATH_BUDGET
                elif url in self._visited or url in self._pending:
                    status = EnqueueStatus.SKIPPED_SEEN
                else:
                    self._pending[url] = None
                    status = EnqueueStatus.ENQUEUED
                self._counts["offer_" + status.value] += 1
                results.append(EnqueueResult(status, url))
        return results

    def record(self, record: PageRecord) -> None:
        with self._lock:
            self._records[record.url] = record

    def update_record(
        self,
        url: str,
        *,
        final_url: str | None = None,
        status: int | None = None,
        blocked_by_robots: bool = False,
    ) -> PageRecord:
        """Overwrite the status fields of an existing record (or create one)."""

        with self._lock:
            record = self._records.get(url)
            if record is None:
                record = PageRecord(url=url, final_url=url)
                self._records[url] = record
            record.final_url = final_url or record.final_url or url
            record.status = status
            record.blocked_by_robots = blocked_by_robots
            return record

    def records(self) -> list[PageRecord]:
        """Snapshot of page records in insertion order."""

        with self._lock:
            return list(self._records.values())

    def visited_count(self) -> int:
        with self._lock:
            return len(self._visited)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)

    def should_continue(self) -> bool:
        """True while work is pending and the page budget is not exhausted."""

        with self._lock:
            return bool(self._pending) and len(self._visited) < self.options.max_pages

    def snapshot(self) -> dict[str, int]:
        """Return frontier counters for logs/stats reporting."""

        with self._lock:
            return {
                "pending": len(self._pending),
                "visited": len(self._visited),
                "blocked_by_path_limit": len(self._blocked),
                "records": len(self._records),
                **dict(self._counts),
            }


__all__ = [
    "EnqueueResult",
    "EnqueueStatus",
    "Frontier",
]
