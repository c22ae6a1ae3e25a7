"""Managed fetch providers: ScrapingBee (rendering proxy) and Zyte (extraction API)."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from job_watch.config import FetchConfig, ScrapingBeeConfig, ZyteConfig
from job_watch.errors import (
    FetchError,
    ProviderError,
    ProviderUnconfiguredError,
)
from job_watch.jobs.adapters.common import first_value, text_value, walk_json
from job_watch.jobs.models import JobCandidate
from job_watch.utils.http_client import USER_AGENT, create_session, read_limited

logger = logging.getLogger("job_watch.fetch.providers")

UNRECOGNIZED_PROPERTY = "unrecognized property"
ERROR_SNIPPET_CHARS = 800

STRUCTURED_KEYS = (
    "jobPostingNavigation",
    "job_posting_navigation",
    "jobPosting",
    "job_posting",
    "structuredData",
    "structured_data",
)


@dataclass
class ProviderPage:
    html: str
    final_url: str
    cookies: str = ""
    structured_data: Any = None
    structured_jobs: list[JobCandidate] = field(default_factory=list)


def _provider_request(send, provider: str, max_bytes: int, timeout: float) -> tuple[int, bytes]:
    try:
        response = send(timeout=timeout)
    except requests.Timeout as e:
        raise ProviderError(f"{provider} timed out: {e}") from e
    except requests.RequestException as e:
        raise ProviderError(f"{provider} request failed: {e}") from e
    try:
        body = read_limited(response, max_bytes)
    except FetchError as e:
        raise ProviderError(f"{provider}: {e}") from e
    return response.status_code, body


class ScrapingBeeFetcher:
    name = "scrapingbee"

    def __init__(self, config: ScrapingBeeConfig, fetch_config: Optional[FetchConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.fetch_config = fetch_config or FetchConfig()
        self.session = session or create_session(max_retries=self.fetch_config.connect_retries)

    def fetch(self, url: str) -> ProviderPage:
        if not self.config.configured:
            raise ProviderUnconfiguredError("ScrapingBee API key not configured")

        params = {"api_key": self.config.api_key, "url": url}
        if self.config.render_js:
            params["render_js"] = "true"

        status, body = _provider_request(
            lambda timeout: self.session.get(
                self.config.api_url,
                params=params,
                headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
                stream=True,
                timeout=timeout,
            ),
            "ScrapingBee",
            self.fetch_config.max_bytes,
            self.fetch_config.timeout_seconds,
        )
        if not 200 <= status < 300:
            raise ProviderError(f"ScrapingBee returned {status}")

        return ProviderPage(html=body.decode("utf-8", errors="replace"), final_url=url)


class ZyteFetcher:
    name = "zyte"

    def __init__(self, config: ZyteConfig, fetch_config: Optional[FetchConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.fetch_config = fetch_config or FetchConfig()
        self.session = session or create_session(max_retries=self.fetch_config.connect_retries)

    def _request(self, payload: dict) -> dict:
        # Zyte's timeout budget is generous: browser rendering happens server-side
        status, body = _provider_request(
            lambda timeout: self.session.post(
                self.config.api_url,
                json=payload,
                auth=(self.config.api_key, ""),
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                stream=True,
                timeout=timeout,
            ),
            "Zyte",
            self.fetch_config.max_bytes,
            max(self.fetch_config.timeout_seconds, 60.0),
        )
        text = body.decode("utf-8", errors="replace")
        if not 200 <= status < 300:
            raise ProviderError(f"Zyte returned {status}: {text[:ERROR_SNIPPET_CHARS]}")
        try:
            data = json.loads(text)
        except ValueError as e:
            raise ProviderError(f"Zyte returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ProviderError("Zyte returned an unexpected payload")
        return data

    def fetch(self, url: str) -> ProviderPage:
        if not self.config.configured:
            raise ProviderUnconfiguredError("Zyte API key not configured")

        base_payload = {"url": url, "browserHtml": self.config.browser_html}
        if self.config.structured_data:
            try:
                data = self._request({**base_payload, self.config.extract_type: True})
            except ProviderError as e:
                if UNRECOGNIZED_PROPERTY not in str(e).lower():
                    raise
                logger.info("Zyte rejected %r extraction, retrying without it", self.config.extract_type)
                data = self._request(base_payload)
        else:
            data = self._request(base_payload)

        if self.config.debug:
            logger.info("Zyte response keys: %s", ", ".join(data.keys()))

        html = data.get("browserHtml") or _decode_body(data.get("httpResponseBody"))
        structured = find_structured_payload(data)

        if self.config.debug:
            try:
                preview = json.dumps(structured, indent=2)[:1000]
            except (TypeError, ValueError):
                preview = "[unserializable]"
            logger.info("Zyte structured type: %s, preview: %s", type(structured).__name__, preview)

        if not html:
            raise ProviderError("Zyte returned empty HTML")

        return ProviderPage(html=html, final_url=url, structured_data=structured)


def _decode_body(value) -> str:
    if not value:
        return ""
    try:
        return base64.b64decode(value).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return str(value)


def find_structured_payload(data: dict):
    """Locate the structured job payload inside a Zyte response."""
    structured = first_value(data, STRUCTURED_KEYS)
    if structured:
        return structured
    if data.get("jobTitle") and data.get("url"):
        return data
    nested = data.get("data")
    if isinstance(nested, dict) and (nested.get("jobTitle") or nested.get("url")):
        return nested
    # Zyte echoes "url" on every response, so this usually yields the response
    # itself; extraction then finds nothing without a title
    if data.get("jobTitle") or data.get("url"):
        return data
    return None


def extract_structured_jobs(structured_data, fallback_company: Optional[str]) -> list[JobCandidate]:
    """Normalize a provider's structured job payload into candidates."""
    if not structured_data:
        return []

    data = structured_data
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except ValueError:
            return []

    jobs: list[JobCandidate] = []
    seen: set[str] = set()

    def push(node: dict) -> None:
        title = text_value(node.get("title") or node.get("name") or node.get("jobTitle"))
        url = node.get("url") or node.get("applyUrl") or node.get("link")
        if not title or not isinstance(url, str) or not url:
            return
        key = f"{title}::{url}".lower()
        if key in seen:
            return
        seen.add(key)

        location = (
            text_value(node.get("location"))
            or text_value(node.get("jobLocation"))
            or text_value(node.get("location_display"))
            or text_value(node.get("locationName"))
        )
        organization = node.get("hiringOrganization")
        company = node.get("company")
        company_name = (
            text_value(organization.get("name") if isinstance(organization, dict) else None)
            or text_value(company.get("name") if isinstance(company, dict) else company)
            or fallback_company
        )

        jobs.append(JobCandidate(
            title=title,
            company=company_name or None,
            location=location,
            url=url.strip(),
            posted_at=text_value(node.get("datePosted") or node.get("postedAt")),
        ))

    def visit(node: dict):
        extra = []
        for key in ("jobPosting", "job_posting", "jobPostingNavigation", "job_posting_navigation"):
            if node.get(key):
                extra.append(node[key])
        if node.get("name") == "jobPosting" and node.get("content"):
            extra.append(node["content"])
        for key in ("items", "positions", "jobs"):
            if isinstance(node.get(key), list):
                extra.extend(node[key])

        if node.get("title") or node.get("name") or node.get("jobTitle"):
            push(node)
        return extra

    walk_json(data, visit)
    return jobs
