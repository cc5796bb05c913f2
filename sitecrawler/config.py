"""Typed crawl options with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_BROKEN_LINK_CHECK,
    DEFAULT_CONCURRENCY,
    DEFAULT_EXCLUDE_EXTENSIONS,
    DEFAULT_IGNORE_HASH,
    DEFAULT_IGNORE_JOB_PAGES,
    DEFAULT_INCLUDE_QUERY,
    DEFAULT_MAX_PAGES,
    DEFAULT_SAME_HOST_ONLY,
    DEFAULT_SCOPE_TO_START_PATH,
    DEFAULT_TIMEOUT_MS,
    JSON_INDENT,
    MAX_CONCURRENCY,
    MAX_MAX_PAGES,
    MIN_CONCURRENCY,
    MIN_MAX_PAGES,
    PATH_LIMIT_MAX_PAGES,
    PATH_LIMIT_MIN_PAGES,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .types import JSONDict, PathLimitRule


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Invalid int for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ValueError(f"Invalid list for '{key}': {value!r}")

    out: list[str] = []
    for item in value:
        text = str(item).strip()
        if text and text not in out:
            out.append(text)
    return tuple(out)


def _lenient_cap(value: Any) -> int:
    # Unparsable caps fall back to the minimum instead of failing the run.
    try:
        cap = int(value or 0)
    except (TypeError, ValueError):
        cap = 0
    return _clamp(cap, PATH_LIMIT_MIN_PAGES, PATH_LIMIT_MAX_PAGES)


def sanitize_path_limits(raw_rules: Iterable[Any] | None) -> tuple[PathLimitRule, ...]:
    """Clean user path-limit rules.

    - Paths gain a leading "/" and lose trailing slashes; "/" itself is dropped.
    - Caps are clamped to [1, 5000].
    - Duplicates (case-insensitive path) keep the smallest cap.
    - Output is sorted by descending path length so the most specific rule wins.
    """

    by_path: dict[str, PathLimitRule] = {}
    for raw in raw_rules or ():
        if isinstance(raw, PathLimitRule):
            raw_path, raw_cap = raw.path, raw.max_pages
        elif isinstance(raw, Mapping):
            raw_path = raw.get("path")
            raw_cap = raw.get("maxPages", raw.get("max_pages"))
        else:
            raise ValueError(f"Invalid path limit rule: {raw!r}")

        path = str(raw_path or "").strip()
        if not path:
            continue
        if not path.startswith("/"):
            path = "/" + path
        path = path.rstrip("/")
        if not path:
            continue

        rule = PathLimitRule(path=path, max_pages=_lenient_cap(raw_cap))
        key = path.lower()
        existing = by_path.get(key)
        if existing is None or rule.max_pages < existing.max_pages:
            by_path[key] = rule

    return tuple(sorted(by_path.values(), key=lambda rule: len(rule.path), reverse=True))


@dataclass(frozen=True, slots=True)
class CrawlOptions:
    """Immutable configuration for one crawl run."""

    max_pages: int = DEFAULT_MAX_PAGES
    concurrency: int = DEFAULT_CONCURRENCY
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    same_host_only: bool = DEFAULT_SAME_HOST_ONLY
    scope_to_start_path: bool = DEFAULT_SCOPE_TO_START_PATH
    include_query: bool = DEFAULT_INCLUDE_QUERY
    ignore_hash: bool = DEFAULT_IGNORE_HASH

    exclude_paths: tuple[str, ...] = ()
    path_limits: tuple[PathLimitRule, ...] = ()
    exclude_extensions: tuple[str, ...] = DEFAULT_EXCLUDE_EXTENSIONS

    ignore_job_pages: bool = DEFAULT_IGNORE_JOB_PAGES
    broken_link_check: bool = DEFAULT_BROKEN_LINK_CHECK

    def __post_init__(self) -> None:
        if not MIN_MAX_PAGES <= self.max_pages <= MAX_MAX_PAGES:
            raise ValueError(f"max_pages must be within [{MIN_MAX_PAGES}, {MAX_MAX_PAGES}]")
        if not MIN_CONCURRENCY <= self.concurrency <= MAX_CONCURRENCY:
            raise ValueError(f"concurrency must be within [{MIN_CONCURRENCY}, {MAX_CONCURRENCY}]")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be > 0")

        # Frozen dataclass: normalize derived fields through object.__setattr__.
        object.__setattr__(self, "exclude_paths", tuple(self.exclude_paths))
        object.__setattr__(self, "path_limits", sanitize_path_limits(self.path_limits))
        object.__setattr__(
            self,
            "exclude_extensions",
            tuple(ext.strip().lower() for ext in self.exclude_extensions if ext and ext.strip()),
        )

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def batch_size(self) -> int:
        """How many frontier candidates one scheduler round takes."""

        return self.concurrency * 2

    def to_dict(self) -> JSONDict:
        """Serialize with the camelCase keys used on the wire."""

        return {
            "maxPages": self.max_pages,
            "concurrency": self.concurrency,
            "timeoutMs": self.timeout_ms,
            "sameHostOnly": self.same_host_only,
            "scopeToStartPath": self.scope_to_start_path,
            "includeQuery": self.include_query,
            "ignoreHash": self.ignore_hash,
            "excludePaths": list(self.exclude_paths),
            "pathLimits": [rule.to_json() for rule in self.path_limits],
            "excludeExtensions": list(self.exclude_extensions),
            "ignoreJobPages": self.ignore_job_pages,
            "brokenLinkCheck": self.broken_link_check,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "CrawlOptions":
        """Build options from a partial camelCase mapping.

        Missing keys take defaults, unknown keys (including legacy ones such as
        `languagePrefixes`) are ignored, and `maxPages`/`concurrency` are
        clamped into their allowed ranges.
        """

        payload = dict(payload or {})

        def pick(key: str, default: Any) -> Any:
            value = payload.get(key)
            return default if value is None else value

        max_pages = _clamp(
            _as_int(pick("maxPages", DEFAULT_MAX_PAGES), "maxPages"),
            MIN_MAX_PAGES,
            MAX_MAX_PAGES,
        )
        concurrency = _clamp(
            _as_int(pick("concurrency", DEFAULT_CONCURRENCY), "concurrency"),
            MIN_CONCURRENCY,
            MAX_CONCURRENCY,
        )
        timeout_ms = _as_int(pick("timeoutMs", DEFAULT_TIMEOUT_MS), "timeoutMs")
        if timeout_ms <= 0:
            raise ValueError(f"Invalid timeout for 'timeoutMs': {timeout_ms!r}")

        raw_limits = pick("pathLimits", [])
        if isinstance(raw_limits, (str, Mapping)) or not isinstance(raw_limits, Iterable):
            raise ValueError(f"Invalid list for 'pathLimits': {raw_limits!r}")

        return cls(
            max_pages=max_pages,
            concurrency=concurrency,
            timeout_ms=timeout_ms,
            same_host_only=_as_bool(pick("sameHostOnly", DEFAULT_SAME_HOST_ONLY), "sameHostOnly"),
            scope_to_start_path=_as_bool(
                pick("scopeToStartPath", DEFAULT_SCOPE_TO_START_PATH),
                "scopeToStartPath",
            ),
            include_query=_as_bool(pick("includeQuery", DEFAULT_INCLUDE_QUERY), "includeQuery"),
            ignore_hash=_as_bool(pick("ignoreHash", DEFAULT_IGNORE_HASH), "ignoreHash"),
            exclude_paths=_as_str_list(pick("excludePaths", []), "excludePaths"),
            path_limits=sanitize_path_limits(raw_limits),
            exclude_extensions=_as_str_list(
                pick("excludeExtensions", DEFAULT_EXCLUDE_EXTENSIONS),
                "excludeExtensions",
            ),
            ignore_job_pages=_as_bool(
                pick("ignoreJobPages", DEFAULT_IGNORE_JOB_PAGES),
                "ignoreJobPages",
            ),
            broken_link_check=_as_bool(
                pick("brokenLinkCheck", DEFAULT_BROKEN_LINK_CHECK),
                "brokenLinkCheck",
            ),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_options(path: str | Path) -> CrawlOptions:
    """Load CrawlOptions from a JSON/YAML preset file."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ValueError(f"Config at {config_path} must be a mapping")

    return CrawlOptions.from_dict(payload)


def save_options(options: CrawlOptions, path: str | Path) -> None:
    """Save CrawlOptions as JSON or YAML based on file extension."""

    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = out_path.suffix.lower()
    payload = options.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return

    if suffix in {".yaml", ".yml"}:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return

    raise ValueError(
        f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
    )


__all__ = [
    "CrawlOptions",
    "load_options",
    "sanitize_path_limits",
    "save_options",
]
