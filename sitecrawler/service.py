"""Framework-free request handlers for the crawl, config, and auth endpoints.

Each handler takes already-decoded request data and returns
`(http_status, json_payload)`, so any web framework can mount them.
"""

from __future__ import annotations

import hmac
import logging
import os
from typing import Any, Callable, Mapping

from .config import CrawlOptions
from .constants import RUNNER_PIN_ENV_VAR, RUNNER_PIN_HEADER
from .pipeline import Crawler
from .types import JSONDict


logger = logging.getLogger(__name__)

LOCKED_ERROR = "Runner is locked. Enter a valid pin to run the crawl."
INVALID_URL_ERROR = "Invalid URL"
INVALID_PIN_ERROR = "Invalid pin"

CrawlerFactory = Callable[[CrawlOptions], Crawler]


def runner_pin_from_env(environ: Mapping[str, str] | None = None) -> str | None:
    """Read the runner pin from the environment; blank means no pin."""

    env = os.environ if environ is None else environ
    pin = (env.get(RUNNER_PIN_ENV_VAR) or "").strip()
    return pin or None


def _pin_matches(provided: Any, runner_pin: str) -> bool:
    candidate = str(provided or "").strip()
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), runner_pin.encode("utf-8"))


def _header(headers: Mapping[str, Any] | None, name: str) -> Any:
    if not headers:
        return None
    lowered = name.lower()
    for key, value in headers.items():
        if str(key).lower() == lowered:
            return value
    return None


def config_payload(runner_pin: str | None = None) -> JSONDict:
    return {"pinRequired": bool(runner_pin)}


def handle_auth_request(
    body: Mapping[str, Any] | None,
    runner_pin: str | None = None,
) -> tuple[int, JSONDict]:
    """Check a pin submitted by a client before it tries to crawl."""

    if not runner_pin:
        return 200, {"ok": True, "pinRequired": False}

    pin = body.get("pin") if isinstance(body, Mapping) else None
    if _pin_matches(pin, runner_pin):
        return 200, {"ok": True, "pinRequired": True}
    return 401, {"ok": False, "pinRequired": True, "error": INVALID_PIN_ERROR}


def handle_crawl_request(
    body: Mapping[str, Any] | None,
    *,
    headers: Mapping[str, Any] | None = None,
    runner_pin: str | None = None,
    crawler_factory: CrawlerFactory | None = None,
) -> tuple[int, JSONDict]:
    """Validate a crawl request, run it, and return the report payload.

    - 401 when a runner pin is configured and the `x-runner-pin` header does not match.
    - 400 for a malformed start URL or invalid option values.
    - 200 with the report otherwise.
    """

    if runner_pin and not _pin_matches(_header(headers, RUNNER_PIN_HEADER), runner_pin):
        return 401, {"error": LOCKED_ERROR}

    if body is not None and not isinstance(body, Mapping):
        return 400, {"error": "Request body must be a JSON object"}
    body = body or {}

    url = str(body.get("url") or "").strip()
    if not url:
        return 400, {"error": INVALID_URL_ERROR}

    raw_options = body.get("options")
    if raw_options is not None and not isinstance(raw_options, Mapping):
        return 400, {"error": "Invalid options: expected an object"}

    try:
        options = CrawlOptions.from_dict(raw_options)
    except ValueError as exc:
        return 400, {"error": f"Invalid options: {exc}"}

    factory = crawler_factory or Crawler
    try:
        report = factory(options).run(url)
    except ValueError as exc:
        return 400, {"error": str(exc) or INVALID_URL_ERROR}
    except Exception:
        logger.exception("Crawl failed for %s", url)
        return 500, {"error": "Crawl failed"}

    return 200, report.to_json()


__all__ = [
    "CrawlerFactory",
    "INVALID_PIN_ERROR",
    "INVALID_URL_ERROR",
    "LOCKED_ERROR",
    "config_payload",
    "handle_auth_request",
    "handle_crawl_request",
    "runner_pin_from_env",
]
