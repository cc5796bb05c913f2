"""CLI entrypoint for running a site crawl."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

if __package__ in {None, ""}:
    repo_root = Path(__file__).resolve().parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

from sitecrawler import Crawler, CrawlOptions, CrawlReport, StatsCollector, Storage, load_options, save_options
from sitecrawler.constants import DEFAULT_USER_AGENT


def _add_toggle(parser: argparse.ArgumentParser, name: str, help_on: str, help_off: str) -> None:
    parser.add_argument(
        f"--{name}",
        dest=name,
        action="store_true",
        default=None,
        help=help_on,
    )
    parser.add_argument(
        f"--no_{name}",
        dest=name,
        action="store_false",
        help=help_off,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Discover every in-scope URL reachable from a start page.",
    )

    parser.add_argument("url", type=str, help="Start URL of the crawl.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a JSON/YAML options preset.",
    )
    parser.add_argument(
        "--save_config",
        type=Path,
        default=None,
        help="Write the effective options to this JSON/YAML preset file.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=Path("crawl_output"),
        help="Root output directory for report, exports, manifests, and logs.",
    )

    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--concurrency", type=int, default=None)
    parser.add_argument("--timeout_ms", type=int, default=None)

    _add_toggle(parser, "same_host_only", "Stay on the start host.", "Follow links to other hosts.")
    _add_toggle(
        parser,
        "scope_to_start_path",
        "Only crawl below the start URL's path.",
        "Crawl the whole site regardless of the start path.",
    )
    _add_toggle(parser, "include_query", "Keep query strings.", "Drop query strings.")
    _add_toggle(parser, "ignore_hash", "Drop fragments.", "Keep fragments.")
    _add_toggle(
        parser,
        "ignore_job_pages",
        "Skip job/career detail pages.",
        "Crawl job/career detail pages.",
    )
    _add_toggle(
        parser,
        "broken_link_check",
        "Report HTTP status for every URL (HEAD/GET pass).",
        "Skip the status pass.",
    )

    parser.add_argument(
        "--exclude_path",
        action="append",
        default=[],
        help="Excluded path (repeatable), e.g. /jobs or /blog/archive.",
    )
    parser.add_argument(
        "--path_limit",
        action="append",
        default=[],
        help="Per-path page cap (repeatable). Format: PATH=N, e.g. /job=20.",
    )
    parser.add_argument(
        "--exclude_extension",
        action="append",
        default=[],
        help="Excluded URL suffix (repeatable). Replaces the default list when given.",
    )

    parser.add_argument("--user_agent", type=str, default=DEFAULT_USER_AGENT)
    parser.add_argument(
        "--print_json",
        action="store_true",
        help="Print the full report JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def _parse_path_limit_specs(specs: list[str]) -> list[dict[str, Any]]:
    rules: list[dict[str, Any]] = []

    for spec in specs:
        raw = spec.strip()
        if not raw:
            continue
        if "=" not in raw:
            raise ValueError(f"Invalid --path_limit '{spec}'. Use PATH=N.")

        path, cap = raw.rsplit("=", maxsplit=1)
        try:
            max_pages = int(cap.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid page cap in --path_limit '{spec}'.") from exc
        rules.append({"path": path.strip(), "maxPages": max_pages})

    return rules


def build_options(args: argparse.Namespace) -> CrawlOptions:
    payload: dict[str, Any] = {}
    if args.config is not None:
        payload = load_options(args.config).to_dict()

    if args.max_pages is not None:
        payload["maxPages"] = args.max_pages
    if args.concurrency is not None:
        payload["concurrency"] = args.concurrency
    if args.timeout_ms is not None:
        payload["timeoutMs"] = args.timeout_ms

    for attr, key in [
        ("same_host_only", "sameHostOnly"),
        ("scope_to_start_path", "scopeToStartPath"),
        ("include_query", "includeQuery"),
        ("ignore_hash", "ignoreHash"),
        ("ignore_job_pages", "ignoreJobPages"),
        ("broken_link_check", "brokenLinkCheck"),
    ]:
        value = getattr(args, attr)
        if value is not None:
            payload[key] = value

    if args.exclude_path:
        payload["excludePaths"] = list(payload.get("excludePaths") or []) + list(args.exclude_path)
    if args.path_limit:
        payload["pathLimits"] = list(payload.get("pathLimits") or []) + _parse_path_limit_specs(
            args.path_limit
        )
    if args.exclude_extension:
        payload["excludeExtensions"] = list(args.exclude_extension)

    return CrawlOptions.from_dict(payload)


def setup_logging(output_dir: Path, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir = output_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "crawl.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG; keep crawler logs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(
    report: CrawlReport,
    stats: dict[str, Any],
    paths: dict[str, Any],
    *,
    print_json: bool,
) -> None:
    summary = report.summary()

    print("\n=== Crawl Complete ===")
    print(f"start_url: {report.start_url}")
    print(f"output_dir: {paths.get('output_dir')}")
    print(f"report: {paths.get('report')}")
    print(f"urls: {paths.get('urls_txt')}")
    print(f"csv: {paths.get('urls_csv')}")
    print(f"stats: {paths.get('crawl_stats')}")

    print("\n--- Summary ---")
    for key in [
        "visited",
        "total",
        "redirects",
        "broken",
        "blockedByRobots",
        "skippedByPathLimit",
        "fromSitemap",
    ]:
        print(f"{key}: {summary[key]}")
    if "duration_seconds" in stats:
        print(f"duration_seconds: {stats['duration_seconds']:.2f}")

    if print_json:
        print("\n--- Report JSON ---")
        print(json.dumps(report.to_json(), indent=2))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.output_dir, verbose=args.verbose)

    try:
        options = build_options(args)
        if args.save_config is not None:
            save_options(options, args.save_config)
    except Exception as exc:
        logging.error("Failed to build options: %s", exc)
        return 2

    storage = Storage(args.output_dir)
    storage.save_crawl_options(options)
    stats = StatsCollector()

    logging.info(
        "Starting crawl: url=%s, output_dir=%s, max_pages=%d, concurrency=%d",
        args.url,
        args.output_dir,
        options.max_pages,
        options.concurrency,
    )

    try:
        crawler = Crawler(options, stats=stats, user_agent=args.user_agent)
        report = crawler.run(args.url)
    except ValueError as exc:
        logging.error("Invalid start URL %r: %s", args.url, exc)
        return 2
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130
    except Exception:
        logging.exception("Crawl failed")
        return 1

    summary = stats.to_json()
    storage.save_report(report)
    storage.save_crawl_stats(summary)

    print_summary(report, summary, storage.paths, print_json=args.print_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
