"""Thread-safe crawl statistics aggregation utilities."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .frontier import EnqueueResult, EnqueueStatus
from .scope import ScopeRejection
from .types import CrawlStats, FetchResult


class StatsCollector:
    """Collect and summarize crawler runtime statistics.

    The collector is thread-safe and intended for use across concurrent
    crawl and verifier workers.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._claim_status_counts: dict[str, int] = defaultdict(int)
        self._enqueue_status_counts: dict[str, int] = defaultdict(int)
        self._rejection_counts: dict[str, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int] = {}

        self._fetch_status_code_counts: dict[str, int] = defaultdict(int)
        self._fetch_error_type_counts: dict[str, int] = defaultdict(int)
        self._fetch_non_html = 0
        self._fetch_redirects = 0
        self._fetch_elapsed_ms_total = 0
        self._fetch_elapsed_samples = 0

        self._probe_status_code_counts: dict[str, int] = defaultdict(int)

        self._worker_errors = 0

    def record_claim(self, result: EnqueueResult) -> None:
        """Record one claim decision made by a worker."""

        with self._lock:
            self._claim_status_counts[result.status.value] += 1
            if result.status == EnqueueStatus.CLAIMED:
                self._core.claimed += 1

    def record_enqueue(self, result_or_status: EnqueueResult | EnqueueStatus) -> None:
        """Record one frontier offer/seed outcome."""

        if isinstance(result_or_status, EnqueueResult):
            status = result_or_status.status
        else:
            status = result_or_status

        with self._lock:
            self._enqueue_status_counts[status.value] += 1
            if status == EnqueueStatus.ENQUEUED:
                self._core.frontier_enqueued += 1
            elif status == EnqueueStatus.SKIPPED_SEEN:
                self._core.frontier_skipped_seen += 1
            elif status in {
                EnqueueStatus.SKIPPED_GLOBAL_BUDGET,
                EnqueueStatus.SKIPPED_PATH_BUDGET,
            }:
                self._core.frontier_skipped_budget += 1

    def record_enqueue_many(
        self, results: list[EnqueueResult] | tuple[EnqueueResult, ...]
    ) -> None:
        """Record many enqueue outcomes."""

        for result in results:
            self.record_enqueue(result)

    def record_rejection(self, reason: ScopeRejection, *, claimed: bool = False) -> None:
        """Record a scope rejection; `claimed` marks URLs dropped after being claimed."""

        with self._lock:
            self._rejection_counts[reason.value] += 1
            if claimed:
                self._core.excluded += 1

    def record_frontier_snapshot(self, snapshot: Mapping[str, int]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def record_fetch(self, result: FetchResult, *, links_found: int = 0) -> None:
        """Record one page fetch result."""

        with self._lock:
            if result.blocked_by_robots:
                self._core.blocked_by_robots += 1
            elif result.error is None and result.status_ok:
                self._core.fetched_ok += 1
            else:
                self._core.fetched_error += 1

            if result.status_code is not None:
                self._fetch_status_code_counts[str(result.status_code)] += 1
                if result.status_ok and not result.is_html:
                    self._fetch_non_html += 1

            if result.error_type and not result.blocked_by_robots:
                self._fetch_error_type_counts[result.error_type] += 1

            if result.final_url and result.final_url != result.requested_url:
                self._fetch_redirects += 1

            if result.elapsed_ms is not None:
                self._fetch_elapsed_ms_total += int(result.elapsed_ms)
                self._fetch_elapsed_samples += 1

            self._core.links_found += links_found

    def record_probe(self, result: FetchResult) -> None:
        """Record one broken-link probe."""

        with self._lock:
            if result.error is None and result.status_code is not None:
                self._core.probed_ok += 1
                self._probe_status_code_counts[str(result.status_code)] += 1
            else:
                self._core.probed_error += 1

    def record_worker_error(self, count: int = 1) -> None:
        """Record an unexpected exception raised inside a worker task."""

        with self._lock:
            self._worker_errors += count

    def finish(self) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._core.finish()

    def snapshot(self) -> CrawlStats:
        """Return a copy of the core counters."""

        with self._lock:
            return CrawlStats(**self._core.to_json())

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = _parse_iso_utc(self._core.finished_at) if self._core.finished_at else datetime.now(
                timezone.utc
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            fetch_elapsed_avg = (
                self._fetch_elapsed_ms_total / self._fetch_elapsed_samples
                if self._fetch_elapsed_samples > 0
                else 0.0
            )
            fetched_total = (
                self._core.fetched_ok + self._core.fetched_error + self._core.blocked_by_robots
            )

            return {
                **core,
                "duration_seconds": duration_seconds,
                "throughput": {
                    "fetched_per_second": (
                        fetched_total / duration_seconds if duration_seconds > 0 else 0.0
                    ),
                },
                "frontier": {
                    "claim_status_counts": dict(self._claim_status_counts),
                    "enqueue_status_counts": dict(self._enqueue_status_counts),
                    "rejection_counts": dict(self._rejection_counts),
                    "snapshot": dict(self._frontier_snapshot),
                },
                "fetch": {
                    "status_code_counts": dict(self._fetch_status_code_counts),
                    "error_type_counts": dict(self._fetch_error_type_counts),
                    "non_html": self._fetch_non_html,
                    "redirects": self._fetch_redirects,
                    "elapsed_ms_total": self._fetch_elapsed_ms_total,
                    "elapsed_ms_samples": self._fetch_elapsed_samples,
                    "elapsed_ms_avg": fetch_elapsed_avg,
                },
                "probe": {
                    "status_code_counts": dict(self._probe_status_code_counts),
                },
                "worker_errors": self._worker_errors,
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
