"""Crawler defaults shared by config, fetcher, scope, and CLI modules."""

from __future__ import annotations


DEFAULT_MAX_PAGES = 300
MIN_MAX_PAGES = 1
MAX_MAX_PAGES = 5000

DEFAULT_CONCURRENCY = 6
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 20

# The status-only pass is kept light on the target site.
VERIFIER_MAX_CONCURRENCY = 6

DEFAULT_TIMEOUT_MS = 12000

DEFAULT_SAME_HOST_ONLY = True
DEFAULT_SCOPE_TO_START_PATH = True
DEFAULT_INCLUDE_QUERY = True
DEFAULT_IGNORE_HASH = True
DEFAULT_IGNORE_JOB_PAGES = True
DEFAULT_BROKEN_LINK_CHECK = False

DEFAULT_EXCLUDE_EXTENSIONS: tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico",
    ".pdf", ".zip", ".rar", ".7z",
    ".css", ".js", ".map",
    ".mp4", ".mp3", ".mov", ".avi",
    ".woff", ".woff2", ".ttf", ".eot",
)

PATH_LIMIT_MIN_PAGES = 1
PATH_LIMIT_MAX_PAGES = 5000

# A segment may repeat at most this many times in a row before the URL is
# treated as a crawler trap.
MAX_CONSECUTIVE_SEGMENTS = 2

JOB_PATH_KEYWORDS: tuple[str, ...] = (
    "/job",
    "/jobs",
    "/vacancy",
    "/vacancies",
    "/career",
    "/careers",
)

DEFAULT_USER_AGENT = "SiteCrawler/1.0"
HTML_ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ANY_ACCEPT_HEADER = "*/*"
READ_CHUNK_SIZE = 16 * 1024
HTML_CONTENT_TYPES: tuple[str, ...] = ("text/html", "application/xhtml+xml")

ROBOTS_PATH = "/robots.txt"
SITEMAP_PATH = "/sitemap.xml"

RUNNER_PIN_HEADER = "x-runner-pin"
RUNNER_PIN_ENV_VAR = "RUNNER_PIN"

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2
