"""HTTP fetching with per-thread `requests` sessions and robots gating."""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Callable

import requests

from .config import CrawlOptions
from .constants import ANY_ACCEPT_HEADER, DEFAULT_USER_AGENT, HTML_ACCEPT_HEADER, READ_CHUNK_SIZE
from .types import FetchKind, FetchResult, is_html_content_type

if TYPE_CHECKING:
    from .robots import RobotsRules


class FetchDeadlineExceeded(requests.Timeout):
    """Raised when a response body is still arriving after the run timeout."""


class Fetcher:
    """Fetch URLs for one crawl run.

    Concurrency model:
    - Each worker thread lazily gets its own `requests.Session`, so the fetcher
      can be shared by every worker of the pool.
    - Every request is bounded by the run timeout; a timeout is reported as a
      failed attempt, never raised.
    """

    def __init__(
        self,
        options: CrawlOptions,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        session_factory: Callable[[], requests.Session] | None = None,
    ) -> None:
        self.options = options
        self.user_agent = user_agent

        self._session_factory = session_factory or requests.Session
        self._thread_local = threading.local()

        self._sessions_lock = threading.Lock()
        self._sessions: list[requests.Session] = []

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch_page(self, url: str, *, robots: "RobotsRules | None" = None) -> FetchResult:
        """GET a page for link extraction.

        The body is only kept for 2xx HTML/XHTML responses.
        """

        blocked = self._robots_block(url, robots, FetchKind.PAGE)
        if blocked is not None:
            return blocked

        return self._request(
            "GET",
            url,
            accept=HTML_ACCEPT_HEADER,
            kind=FetchKind.PAGE,
            read_body=lambda status, content_type: _is_2xx(status) and is_html_content_type(content_type),
        )

    def fetch_resource(self, url: str, *, robots: "RobotsRules | None" = None) -> FetchResult:
        """GET an auxiliary text resource (robots.txt, sitemap.xml) of any content type."""

        blocked = self._robots_block(url, robots, FetchKind.RESOURCE)
        if blocked is not None:
            return blocked

        return self._request(
            "GET",
            url,
            accept=HTML_ACCEPT_HEADER,
            kind=FetchKind.RESOURCE,
            read_body=lambda status, content_type: _is_2xx(status),
        )

    def probe(self, url: str, *, robots: "RobotsRules | None" = None) -> FetchResult:
        """Status-only check: HEAD first, GET when HEAD fails at the transport level."""

        blocked = self._robots_block(url, robots, FetchKind.PROBE)
        if blocked is not None:
            return blocked

        result = self._request("HEAD", url, accept=ANY_ACCEPT_HEADER, kind=FetchKind.PROBE)
        if result.error is None:
            return result

        return self._request("GET", url, accept=HTML_ACCEPT_HEADER, kind=FetchKind.PROBE)

    def close(self) -> None:
        """Close every session opened by worker threads."""

        with self._closed_lock:
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []

        for session in sessions:
            session.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def _robots_block(
        self,
        url: str,
        robots: "RobotsRules | None",
        kind: FetchKind,
    ) -> FetchResult | None:
        if robots is None or robots.is_allowed(url, self.user_agent):
            return None
        return FetchResult(
            requested_url=url,
            final_url=url,
            status_code=None,
            kind=kind,
            blocked_by_robots=True,
            error="Blocked by robots.txt",
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        accept: str,
        kind: FetchKind,
        read_body: Callable[[int, str | None], bool] | None = None,
    ) -> FetchResult:
        if self._is_closed():
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                kind=kind,
                error="Fetcher is closed",
            )

        started = time.perf_counter()
        deadline = started + self.options.timeout_seconds
        session = self._thread_local_session()
        headers = {"User-Agent": self.user_agent, "Accept": accept}

        try:
            response = session.request(
                method,
                url,
                headers=headers,
                timeout=self.options.timeout_seconds,
                allow_redirects=True,
                stream=True,
            )
            content_type = response.headers.get("Content-Type")
            try:
                body = None
                if read_body is not None and read_body(response.status_code, content_type):
                    body = self._read_text(response, deadline)
            finally:
                response.close()
        except requests.RequestException as exc:
            return FetchResult(
                requested_url=url,
                final_url=None,
                status_code=None,
                kind=kind,
                elapsed_ms=int((time.perf_counter() - started) * 1000),
                error=f"{exc.__class__.__name__}: {exc}",
            )

        return FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=content_type,
            body=body,
            kind=kind,
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )

    def _read_text(self, response: requests.Response, deadline: float) -> str:
        """Read a streamed body, giving up once the whole request passes `deadline`.

        The `requests` timeout only bounds connect and each socket read, so a
        server trickling bytes could otherwise hold a worker indefinitely.
        """

        chunks: list[bytes] = []
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            if chunk:
                chunks.append(chunk)
            if time.perf_counter() > deadline:
                raise FetchDeadlineExceeded(
                    f"response not complete within {self.options.timeout_seconds:g}s"
                )
        return b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = self._session_factory()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session


def _is_2xx(status_code: int) -> bool:
    return 200 <= status_code < 300


__all__ = ["FetchDeadlineExceeded", "Fetcher"]
