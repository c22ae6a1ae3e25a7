"""Direct page and JSON retrieval with manual, re-vetted redirects."""

import json
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urljoin, urlsplit

import requests

from job_watch.config import FetchConfig
from job_watch.errors import (
    FetchError,
    FetchTimeoutError,
    TooManyRedirectsError,
    UpstreamHttpError,
)
from job_watch.fetch.guard import ensure_public
from job_watch.utils.http_client import (
    HTML_HEADERS,
    JSON_HEADERS,
    cookie_header,
    create_session,
    read_limited,
    remaining_time,
)

logger = logging.getLogger("job_watch.fetch.direct")

REDIRECT_STATUSES = {301, 302, 303, 307, 308}


@dataclass
class FetchedPage:
    html: str
    cookies: str
    final_url: str


class DirectFetcher:
    """Fetch one URL at a time without any intermediary provider.

    Redirects are followed by hand so the address guard sees every hop;
    429 responses are retried after a short, capped wait. Redirects and
    rate-limit retries draw on separate budgets.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        session: Optional[requests.Session] = None,
        guard: Callable[[str], None] = ensure_public,
    ):
        self.config = config or FetchConfig()
        self.session = session or create_session(max_retries=self.config.connect_retries)
        self.guard = guard

    def fetch_html(self, url: str, headers: Optional[dict] = None) -> FetchedPage:
        response, final_url, body = self._fetch(url, {**HTML_HEADERS, **(headers or {})})
        return FetchedPage(
            html=body.decode("utf-8", errors="replace"),
            cookies=cookie_header(response),
            final_url=final_url,
        )

    def fetch_json(self, url: str, headers: Optional[dict] = None):
        _response, final_url, body = self._fetch(url, {**JSON_HEADERS, **(headers or {})})
        try:
            return json.loads(body.decode("utf-8", errors="replace"))
        except ValueError as e:
            raise FetchError(f"Invalid JSON from {final_url}: {e}") from e

    def _wait_for_rate_limit(self, response: requests.Response, deadline: float) -> None:
        retry_after = response.headers.get("Retry-After")
        wait_ms = self.config.rate_limit_wait_ms
        if retry_after:
            try:
                seconds = float(retry_after)
            except ValueError:
                seconds = None  # HTTP-date form; keep the default wait
            if seconds is not None and math.isfinite(seconds):
                wait_ms = seconds * 1000
        wait_s = min(max(wait_ms, 0), self.config.rate_limit_max_wait_ms) / 1000
        wait_s = min(wait_s, remaining_time(deadline))
        time.sleep(wait_s)

    def _fetch(self, url: str, headers: dict) -> tuple[requests.Response, str, bytes]:
        deadline = time.monotonic() + self.config.timeout_seconds
        current_url = url
        redirects = 0
        rate_limit_retries = 0

        self.guard(urlsplit(current_url).hostname or "")

        while True:
            try:
                response = self.session.get(
                    current_url,
                    headers=headers,
                    allow_redirects=False,
                    stream=True,
                    timeout=remaining_time(deadline),
                )
            except requests.Timeout as e:
                raise FetchTimeoutError(f"Fetch timed out for {current_url}") from e
            except requests.RequestException as e:
                raise FetchError(f"Request failed for {current_url}: {e}") from e

            status = response.status_code

            if status == 429:
                response.close()
                if rate_limit_retries >= self.config.max_rate_limit_retries:
                    raise UpstreamHttpError(429, "Upstream kept rate limiting (429)")
                rate_limit_retries += 1
                logger.info("Rate limited by %s, retry %d", current_url, rate_limit_retries)
                self._wait_for_rate_limit(response, deadline)
                continue

            if status in REDIRECT_STATUSES:
                response.close()
                location = response.headers.get("Location")
                if not location:
                    raise UpstreamHttpError(status, "Redirect missing location")
                if redirects >= self.config.max_redirects:
                    raise TooManyRedirectsError(self.config.max_redirects)
                redirects += 1
                next_url = urljoin(current_url, location)
                if urlsplit(next_url).scheme not in ("http", "https"):
                    raise UpstreamHttpError(status, f"Redirect to unsupported scheme: {next_url}")
                self.guard(urlsplit(next_url).hostname or "")
                logger.debug("Redirect %d: %s -> %s", redirects, current_url, next_url)
                current_url = next_url
                continue

            if not 200 <= status < 300:
                response.close()
                raise UpstreamHttpError(status)

            body = read_limited(response, self.config.max_bytes, deadline)
            return response, current_url, body
