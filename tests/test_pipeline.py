import pytest

from sitecrawler.config import CrawlOptions
from sitecrawler.fetcher import Fetcher
from sitecrawler.pipeline import Crawler, crawl
from sitecrawler.stats import StatsCollector

from fakes import DummyResponse, FakeSession, page

ORIGIN = "https://example.com"


def url_for(path: str) -> str:
    return ORIGIN if path == "/" else ORIGIN + path


def site_routes(pages: dict[str, list[str]]) -> dict:
    return {url_for(path): page(url_for(path), *links) for path, links in pages.items()}


def run_crawl(session: FakeSession, start: str = ORIGIN, **payload):
    options = CrawlOptions.from_dict(payload)
    stats = StatsCollector()
    fetcher = Fetcher(options, session_factory=lambda: session)
    report = Crawler(options, fetcher=fetcher, stats=stats).run(start)
    return report, stats


def test_ten_page_site_without_sitemap():
    pages = {"/": ["/p1", "/p2", "/p3"]}
    for i in range(1, 10):
        pages[f"/p{i}"] = ["/", f"/p{i + 1}" if i < 9 else "/p1"]
    session = FakeSession(site_routes(pages))

    report, _ = run_crawl(session, maxPages=50, concurrency=4)

    assert report.returned == 10
    assert report.visited <= 50
    assert report.visited == 10
    assert not report.from_sitemap
    assert [record.url for record in report.urls] == sorted(url_for(path) for path in pages)
    assert all(record.status is None for record in report.urls)
    assert report.skipped_by_path_limit == {}

    page_requests = [url for url in session.urls_requested("GET") if not url.endswith((".txt", ".xml"))]
    assert sorted(page_requests) == sorted(set(page_requests))


def test_sitemap_takes_precedence_over_start_url():
    sitemap = """<urlset>
      <url><loc>https://example.com/a</loc></url>
      <url><loc>https://example.com/b/</loc></url>
    </urlset>"""
    routes = site_routes({"/": ["/c"], "/a": ["/c"], "/b": [], "/c": []})
    routes[ORIGIN + "/sitemap.xml"] = DummyResponse(
        ORIGIN + "/sitemap.xml", 200, sitemap, {"Content-Type": "application/xml"}
    )
    session = FakeSession(routes)

    report, _ = run_crawl(session)

    assert report.from_sitemap
    assert [record.url for record in report.urls] == [
        "https://example.com/a",
        "https://example.com/b",
        "https://example.com/c",
    ]
    assert ORIGIN not in session.urls_requested("GET")


def test_sitemap_seeds_are_filtered_by_start_path():
    sitemap = """<urlset>
      <url><loc>https://example.com/docs/x</loc></url>
      <url><loc>https://example.com/blog/y</loc></url>
    </urlset>"""
    routes = site_routes({"/docs/x": ["/docs2", "/docs/y"], "/docs/y": []})
    routes[ORIGIN + "/sitemap.xml"] = DummyResponse(
        ORIGIN + "/sitemap.xml", 200, sitemap, {"Content-Type": "text/xml"}
    )
    session = FakeSession(routes)

    report, _ = run_crawl(session, start=ORIGIN + "/docs")

    assert [record.url for record in report.urls] == [
        "https://example.com/docs/x",
        "https://example.com/docs/y",
    ]


def test_unbounded_graph_stops_at_max_pages():
    def infinite(method, url):
        index = int(url.rsplit("/", 1)[-1])
        return page(url, f"/page/{2 * index + 1}", f"/page/{2 * index + 2}")

    session = FakeSession(fallback=infinite)
    session.routes[ORIGIN + "/robots.txt"] = DummyResponse(ORIGIN + "/robots.txt", 404, "")
    session.routes[ORIGIN + "/sitemap.xml"] = DummyResponse(ORIGIN + "/sitemap.xml", 404, "")

    report, _ = run_crawl(
        session,
        start=ORIGIN + "/page/0",
        maxPages=25,
        concurrency=3,
        scopeToStartPath=False,
    )

    assert report.visited == 25
    assert report.returned == 25
    assert len([url for url in session.urls_requested("GET") if "/page/" in url]) == 25


def test_path_limit_caps_admissions_and_counts_skips():
    job_links = [f"/job/{i}" for i in range(10)] + [f"/en/job/{i}" for i in range(10)]
    session = FakeSession(site_routes({"/": job_links}))

    report, _ = run_crawl(
        session,
        maxPages=100,
        concurrency=8,
        ignoreJobPages=False,
        pathLimits=[{"path": "/job", "maxPages": 5}],
    )

    job_urls = [record.url for record in report.urls if "/job/" in record.url]
    assert len(job_urls) == 5
    assert report.skipped_by_path_limit == {"/job": 15}
    assert report.to_json()["counts"]["skippedByPathLimit"] == {"/job": 15}


def test_scope_filters_apply_to_discovered_links():
    links = [
        "/careers",
        "/careers/42",
        "/private/x",
        "/logo.png",
        "https://other.example.org/page",
        "mailto:team@example.com",
    ]
    session = FakeSession(site_routes({"/": links, "/careers": []}))

    report, stats = run_crawl(session, excludePaths=["/private"])

    assert [record.url for record in report.urls] == [
        "https://example.com",
        "https://example.com/careers",
    ]
    requested = session.urls_requested()
    assert "https://other.example.org/page" not in requested
    assert "https://example.com/careers/42" not in requested
    rejections = stats.to_json()["frontier"]["rejection_counts"]
    assert rejections == {
        "job_detail_page": 1,
        "excluded_path": 1,
        "excluded_extension": 1,
        "other_host": 1,
    }


def test_robots_disallowed_pages_are_reported_without_fetching():
    routes = site_routes({"/": ["/secret/a", "/open"], "/open": []})
    routes[ORIGIN + "/robots.txt"] = DummyResponse(
        ORIGIN + "/robots.txt", 200, "User-agent: *\nDisallow: /secret\n", {"Content-Type": "text/plain"}
    )
    session = FakeSession(routes)

    report, stats = run_crawl(session)

    by_url = {record.url: record for record in report.urls}
    assert by_url["https://example.com/secret/a"].blocked_by_robots
    assert by_url["https://example.com/secret/a"].status is None
    assert not by_url["https://example.com/open"].blocked_by_robots
    assert "https://example.com/secret/a" not in session.urls_requested()
    assert stats.snapshot().blocked_by_robots == 1


def test_redirects_are_recorded_and_links_resolve_against_final_url():
    routes = site_routes({"/": ["/old"], "/landing/next": []})
    routes[ORIGIN + "/old"] = page(ORIGIN + "/landing/", "next")
    session = FakeSession(routes)

    report, _ = run_crawl(session)

    by_url = {record.url: record for record in report.urls}
    assert by_url["https://example.com/old"].final_url == "https://example.com/landing/"
    assert by_url["https://example.com/old"].redirected
    assert "https://example.com/landing/next" in by_url


def test_broken_link_check_probes_every_reported_url():
    routes = site_routes({"/": ["/ok", "/gone", "/moved"], "/ok": []})
    routes[ORIGIN + "/gone"] = DummyResponse(ORIGIN + "/gone", 404, "missing")
    routes[ORIGIN + "/moved"] = page(ORIGIN + "/ok")
    session = FakeSession(routes)

    report, stats = run_crawl(session, brokenLinkCheck=True, concurrency=10)

    statuses = {record.url: record.status for record in report.urls}
    assert statuses == {
        "https://example.com": 200,
        "https://example.com/gone": 404,
        "https://example.com/moved": 200,
        "https://example.com/ok": 200,
    }
    assert {record.url: record.final_url for record in report.urls}["https://example.com/moved"] == (
        "https://example.com/ok"
    )
    assert sorted(session.urls_requested("HEAD")) == sorted(statuses)
    assert report.summary()["broken"] == 1
    assert stats.snapshot().probed_ok == 4


def test_worker_errors_do_not_abort_the_run():
    routes = site_routes({"/": ["/boom", "/fine"], "/fine": []})
    routes[ORIGIN + "/boom"] = RuntimeError("unexpected")
    session = FakeSession(routes)

    report, stats = run_crawl(session)

    assert [record.url for record in report.urls] == ["https://example.com", "https://example.com/fine"]
    assert report.visited == 3

    payload = stats.to_json()
    assert payload["worker_errors"] == 1
    assert set(payload) - set(stats.snapshot().to_json()) == {
        "duration_seconds",
        "throughput",
        "frontier",
        "fetch",
        "probe",
        "worker_errors",
    }


def test_inferred_language_prefix_and_options_echo():
    session = FakeSession(site_routes({"/de": ["/de/kontakt"], "/de/kontakt": []}))

    report, _ = run_crawl(session, start=ORIGIN + "/de/", languagePrefixes=["de"])

    payload = report.to_json()
    assert payload["startUrl"] == "https://example.com/de"
    assert payload["origin"] == "https://example.com"
    assert payload["options"]["inferredLanguagePrefix"] == "de"
    assert "languagePrefixes" not in payload["options"]
    assert payload["counts"]["returned"] == 2


def test_invalid_start_url_raises_before_any_request():
    session = FakeSession()

    with pytest.raises(ValueError, match="Invalid URL"):
        run_crawl(session, start="not a url")
    assert session.calls == []


def test_crawl_helper_accepts_wire_options(monkeypatch):
    session = FakeSession(site_routes({"/": []}))
    monkeypatch.setattr("sitecrawler.fetcher.requests.Session", lambda: session)

    report = crawl(ORIGIN, {"maxPages": 3})

    assert report.options.max_pages == 3
    assert [record.url for record in report.urls] == [ORIGIN]
