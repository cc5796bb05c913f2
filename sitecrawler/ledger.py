"""Thread-safe per-path page budgets."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable
from urllib.parse import urlsplit

from .types import PathLimitRule
from .url import normalize_path_for_rules, path_segments


class LedgerStatus(str, Enum):
    ADMITTED = "admitted"
    UNCONSTRAINED = "unconstrained"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class LedgerDecision:
    """Outcome of one admission attempt."""

    status: LedgerStatus
    rule: PathLimitRule | None = None

    @property
    def admitted(self) -> bool:
        return self.status != LedgerStatus.REJECTED


class PathBudgetLedger:
    """Count admissions per path-limit rule and refuse them past the rule's cap.

    Rules are expected most-specific first (see `sanitize_path_limits`); the
    first rule matching a URL's rule-normalized path is the only one charged.
    """

    def __init__(self, rules: Iterable[PathLimitRule]) -> None:
        self.rules = tuple(rules)
        self._rule_segments = [
            (rule, path_segments(rule.path.lower())) for rule in self.rules
        ]

        self._lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._skipped: dict[str, int] = {}

    def match(self, url: str) -> PathLimitRule | None:
        """Return the most specific rule covering `url`, if any."""

        if not self.rules:
            return None

        segments = path_segments(normalize_path_for_rules(urlsplit(url).path))
        for rule, rule_segments in self._rule_segments:
            if segments[: len(rule_segments)] == rule_segments:
                return rule
        return None

    def admit(self, url: str) -> LedgerDecision:
        """Atomically check the matching rule's counter and charge it."""

        rule = self.match(url)
        if rule is None:
            return LedgerDecision(LedgerStatus.UNCONSTRAINED)

        key = rule.path.lower()
        with self._lock:
            used = self._counters.get(key, 0)
            if used >= rule.max_pages:
                self._skipped[rule.path] = self._skipped.get(rule.path, 0) + 1
                return LedgerDecision(LedgerStatus.REJECTED, rule)
            self._counters[key] = used + 1

        return LedgerDecision(LedgerStatus.ADMITTED, rule)

    def counters(self) -> dict[str, int]:
        """Snapshot of admissions per (lowercased) rule path."""

        with self._lock:
            return dict(self._counters)

    def skipped_by_rule(self) -> dict[str, int]:
        """Snapshot of rejections keyed by the rule path as configured."""

        with self._lock:
            return dict(self._skipped)


__all__ = [
    "LedgerDecision",
    "LedgerStatus",
    "PathBudgetLedger",
]
