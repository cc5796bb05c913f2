"""Filesystem-backed storage for crawl reports and manifests.

Storage owns the on-disk layout. Other modules should use this API instead of
building paths manually.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping

from .config import CrawlOptions
from .constants import JSON_INDENT
from .report import CrawlReport
from .types import CrawlStats, JSONDict


class Storage:
    """Persist crawl outputs under a single `output_dir` root."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

        self.manifests_dir = self.output_dir / "manifests"
        self.logs_dir = self.output_dir / "logs"

        self.report_path = self.output_dir / "report.json"
        self.urls_txt_path = self.output_dir / "urls.txt"
        self.urls_csv_path = self.output_dir / "urls.csv"
        self.crawl_options_path = self.manifests_dir / "crawl_options.json"
        self.crawl_stats_path = self.manifests_dir / "crawl_stats.json"

        self._ensure_layout()

    @property
    def paths(self) -> JSONDict:
        """Return important output paths for logging/CLI status messages."""

        return {
            "output_dir": str(self.output_dir),
            "report": str(self.report_path),
            "urls_txt": str(self.urls_txt_path),
            "urls_csv": str(self.urls_csv_path),
            "crawl_options": str(self.crawl_options_path),
            "crawl_stats": str(self.crawl_stats_path),
            "log_dir": str(self.logs_dir),
        }

    def _ensure_layout(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.manifests_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir.mkdir(parents=True, exist_ok=True)

    def save_report(self, report: CrawlReport) -> None:
        """Write the JSON report plus the plain-text and CSV URL exports."""

        self._atomic_write_json(self.report_path, report.to_json(), sort_keys=False)
        self._atomic_write_text(self.urls_txt_path, _with_newline(report.to_url_lines()))
        self._atomic_write_text(self.urls_csv_path, _with_newline(report.to_csv_text()))

    def save_crawl_options(self, options: CrawlOptions | Mapping[str, Any]) -> None:
        """Write crawl options manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(options, CrawlOptions):
            payload = options.to_dict()
        else:
            payload = options
        self._atomic_write_json(self.crawl_options_path, dict(payload))

    def save_crawl_stats(self, stats: CrawlStats | Mapping[str, Any]) -> None:
        """Write crawl stats manifest atomically as JSON."""

        payload: Mapping[str, Any]
        if isinstance(stats, CrawlStats):
            payload = stats.to_json()
        else:
            payload = stats
        self._atomic_write_json(self.crawl_stats_path, dict(payload))

    @staticmethod
    def _atomic_write_text(path: Path, content: str) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

    @classmethod
    def _atomic_write_json(
        cls,
        path: Path,
        payload: Mapping[str, Any],
        *,
        sort_keys: bool = True,
    ) -> None:
        content = json.dumps(payload, ensure_ascii=False, indent=JSON_INDENT, sort_keys=sort_keys) + "\n"
        cls._atomic_write_text(path, content)


def _with_newline(text: str) -> str:
    return text + "\n" if text else ""


__all__ = ["Storage"]
