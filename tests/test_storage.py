import json

from sitecrawler.config import CrawlOptions
from sitecrawler.report import build_report
from sitecrawler.storage import Storage
from sitecrawler.types import PageRecord


def make_report():
    return build_report(
        start_url="https://example.com",
        origin="https://example.com",
        options=CrawlOptions(broken_link_check=True),
        visited=4,
        from_sitemap=False,
        records=[
            PageRecord("https://example.com/b", "https://example.com/b", 404),
            PageRecord("https://example.com/a", "https://example.com/a-new", 200),
            PageRecord("https://example.com/c", "https://example.com/c", None, True),
        ],
        skipped_by_path_limit={"/job": 2},
    )


def test_report_is_sorted_and_summarized():
    report = make_report()

    assert [record.url for record in report.urls] == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert report.summary() == {
        "total": 3,
        "redirects": 1,
        "broken": 1,
        "blockedByRobots": 1,
        "skippedByPathLimit": 2,
        "fromSitemap": False,
        "visited": 4,
    }


def test_csv_export_quotes_every_value():
    lines = make_report().to_csv_text().split("\n")

    assert lines[0] == "url,finalUrl,status,blockedByRobots"
    assert lines[1] == '"https://example.com/a","https://example.com/a-new","200","false"'
    assert lines[3] == '"https://example.com/c","https://example.com/c","","true"'


def test_storage_writes_report_exports_and_manifests(tmp_path):
    storage = Storage(tmp_path / "out")
    report = make_report()

    storage.save_report(report)
    storage.save_crawl_options(report.options)
    storage.save_crawl_stats({"fetched_ok": 3})

    assert json.loads(storage.report_path.read_text(encoding="utf-8")) == report.to_json()
    assert storage.urls_txt_path.read_text(encoding="utf-8").splitlines() == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert storage.urls_csv_path.read_text(encoding="utf-8").startswith("url,finalUrl,status,blockedByRobots\n")
    assert json.loads(storage.crawl_options_path.read_text(encoding="utf-8"))["brokenLinkCheck"] is True
    assert json.loads(storage.crawl_stats_path.read_text(encoding="utf-8")) == {"fetched_ok": 3}
    assert storage.logs_dir.is_dir()
    assert not list(storage.output_dir.glob("*.tmp"))
