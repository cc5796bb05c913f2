from sitecrawler.fetcher import Fetcher
from sitecrawler.pipeline import Crawler
from sitecrawler.service import (
    LOCKED_ERROR,
    config_payload,
    handle_auth_request,
    handle_crawl_request,
    runner_pin_from_env,
)

from fakes import FakeSession, page

ORIGIN = "https://example.com"


def factory_for(session: FakeSession):
    def build(options):
        return Crawler(options, fetcher=Fetcher(options, session_factory=lambda: session))

    return build


def small_site() -> FakeSession:
    return FakeSession(
        {
            ORIGIN: page(ORIGIN, "/about", "/jobs/1"),
            ORIGIN + "/about": page(ORIGIN + "/about"),
        }
    )


def test_crawl_request_returns_report_payload():
    status, payload = handle_crawl_request(
        {"url": ORIGIN + "/", "options": {"maxPages": 10, "concurrency": 2}},
        crawler_factory=factory_for(small_site()),
    )

    assert status == 200
    assert payload["startUrl"] == ORIGIN
    assert payload["origin"] == ORIGIN
    assert payload["counts"] == {
        "visited": 2,
        "returned": 2,
        "fromSitemap": False,
        "skippedByPathLimit": {},
    }
    assert payload["options"]["maxPages"] == 10
    assert payload["options"]["inferredLanguagePrefix"] == ""
    assert payload["urls"] == [
        {"url": ORIGIN, "finalUrl": ORIGIN, "status": None, "blockedByRobots": False},
        {"url": ORIGIN + "/about", "finalUrl": ORIGIN + "/about", "status": None, "blockedByRobots": False},
    ]


def test_crawl_request_requires_matching_pin():
    session = small_site()

    assert handle_crawl_request(
        {"url": ORIGIN},
        runner_pin="1234",
        crawler_factory=factory_for(session),
    ) == (401, {"error": LOCKED_ERROR})
    assert handle_crawl_request(
        {"url": ORIGIN},
        headers={"x-runner-pin": "9999"},
        runner_pin="1234",
        crawler_factory=factory_for(session),
    ) == (401, {"error": "Runner is locked. Enter a valid pin to run the crawl."})
    assert session.calls == []

    status, _ = handle_crawl_request(
        {"url": ORIGIN},
        headers={"X-Runner-Pin": " 1234 "},
        runner_pin="1234",
        crawler_factory=factory_for(session),
    )
    assert status == 200


def test_crawl_request_rejects_bad_input():
    factory = factory_for(FakeSession())

    assert handle_crawl_request({"url": "not a url"}, crawler_factory=factory) == (
        400,
        {"error": "Invalid URL"},
    )
    assert handle_crawl_request({}, crawler_factory=factory) == (400, {"error": "Invalid URL"})
    assert handle_crawl_request({"url": "ftp://example.com"}, crawler_factory=factory)[0] == 400

    status, payload = handle_crawl_request(
        {"url": ORIGIN, "options": {"maxPages": "lots"}},
        crawler_factory=factory,
    )
    assert status == 400
    assert payload["error"].startswith("Invalid options")

    status, _ = handle_crawl_request({"url": ORIGIN, "options": ["nope"]}, crawler_factory=factory)
    assert status == 400


def test_unexpected_crawl_failure_maps_to_500():
    class ExplodingCrawler:
        def __init__(self, options):
            self.options = options

        def run(self, start_url):
            raise RuntimeError("disk on fire")

    status, payload = handle_crawl_request({"url": ORIGIN}, crawler_factory=ExplodingCrawler)

    assert status == 500
    assert payload == {"error": "Crawl failed"}


def test_config_and_auth_endpoints():
    assert config_payload(None) == {"pinRequired": False}
    assert config_payload("1234") == {"pinRequired": True}

    assert handle_auth_request({"pin": "x"}, None) == (200, {"ok": True, "pinRequired": False})
    assert handle_auth_request({"pin": "1234"}, "1234") == (200, {"ok": True, "pinRequired": True})
    assert handle_auth_request({"pin": "0000"}, "1234") == (
        401,
        {"ok": False, "pinRequired": True, "error": "Invalid pin"},
    )
    assert handle_auth_request(None, "1234")[0] == 401


def test_runner_pin_from_env(monkeypatch):
    assert runner_pin_from_env({"RUNNER_PIN": " 42 "}) == "42"
    assert runner_pin_from_env({"RUNNER_PIN": "  "}) is None
    assert runner_pin_from_env({}) is None

    monkeypatch.setenv("RUNNER_PIN", "abc")
    assert runner_pin_from_env() == "abc"
