"""Site crawler package: options, scope rules, frontier, fetcher, and reporting."""

from .config import CrawlOptions, load_options, sanitize_path_limits, save_options
from .fetcher import Fetcher
from .frontier import EnqueueResult, EnqueueStatus, Frontier
from .ledger import LedgerDecision, LedgerStatus, PathBudgetLedger
from .pipeline import Crawler, crawl
from .report import CrawlReport, build_report
from .robots import RobotsRules, SiteLoader, SiteResources
from .scope import ExcludedPathRule, ScopeFilter, ScopeRejection
from .service import config_payload, handle_auth_request, handle_crawl_request, runner_pin_from_env
from .stats import StatsCollector
from .storage import Storage
from .types import CrawlStats, FetchKind, FetchResult, PageRecord, PathLimitRule, utc_now_iso
from .url import extract_links_from_html, host_from_url, infer_language_prefix, normalize_url, origin_of
from .verifier import BrokenLinkVerifier
from .workers import WorkerPool

__all__ = [
    "BrokenLinkVerifier",
    "CrawlOptions",
    "CrawlReport",
    "CrawlStats",
    "Crawler",
    "EnqueueResult",
    "EnqueueStatus",
    "ExcludedPathRule",
    "FetchKind",
    "FetchResult",
    "Fetcher",
    "Frontier",
    "LedgerDecision",
    "LedgerStatus",
    "PageRecord",
    "PathBudgetLedger",
    "PathLimitRule",
    "RobotsRules",
    "ScopeFilter",
    "ScopeRejection",
    "SiteLoader",
    "SiteResources",
    "StatsCollector",
    "Storage",
    "WorkerPool",
    "build_report",
    "config_payload",
    "crawl",
    "extract_links_from_html",
    "handle_auth_request",
    "handle_crawl_request",
    "host_from_url",
    "infer_language_prefix",
    "load_options",
    "normalize_url",
    "origin_of",
    "runner_pin_from_env",
    "sanitize_path_limits",
    "save_options",
    "utc_now_iso",
]
