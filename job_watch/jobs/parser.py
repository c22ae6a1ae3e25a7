"""Turn one career-page URL into a deduplicated list of job candidates."""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import urlsplit

import requests
from bs4 import BeautifulSoup

from job_watch.config import AppConfig
from job_watch.errors import AdapterParseError, InvalidInputError
from job_watch.fetch.chain import fetch_with_pipeline
from job_watch.fetch.guard import ensure_public
from job_watch.jobs.adapters import GENERIC, ParseContext, SiteAdapter, get_adapter, parse_generic
from job_watch.jobs.merge import collect_warnings, company_from_meta, filter_jobs, merge_jobs
from job_watch.jobs.models import JobCandidate

logger = logging.getLogger("job_watch.jobs.parser")

ADAPTER_FAILED_WARNING = "Adapter parsing failed; falling back to generic rules."


@dataclass
class ParsedSource:
    source_url: str
    host: str
    jobs: list[JobCandidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    adapter: SiteAdapter = GENERIC


def validate_source_url(url: str) -> tuple[str, str]:
    """Return (normalized url, hostname); raise InvalidInputError otherwise."""
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidInputError(f"Invalid URL: {url!r}") from e
    if parts.scheme not in ("http", "https"):
        raise InvalidInputError(f"Only http(s) URLs are supported: {url!r}")
    if not parts.hostname:
        raise InvalidInputError(f"URL has no host: {url!r}")
    return url, parts.hostname.lower()


def parse_source_url(
    url: str,
    config: AppConfig,
    session: Optional[requests.Session] = None,
) -> ParsedSource:
    source_url, host = validate_source_url(url)
    ensure_public(host)

    fetched = fetch_with_pipeline(source_url, config, session=session)
    page = BeautifulSoup(fetched.html, "lxml")

    company = company_from_meta(page, host)
    warnings = collect_warnings(fetched.html, page, config.fetch.max_bytes)

    adapter = get_adapter(host)
    context = ParseContext(
        company=company,
        fetch_json=fetched.fetch_json,
        cookies=fetched.cookies,
        final_url=fetched.final_url,
    )

    adapter_jobs: list[JobCandidate] = []
    try:
        adapter_jobs = adapter.parse(page, source_url, context)
    except Exception as e:
        error = AdapterParseError(adapter.name, e)
        logger.warning("%s on %s", error, source_url)
        warnings.append(ADAPTER_FAILED_WARNING)

    structured_jobs = []
    for job in fetched.structured_jobs:
        if not job.company or job.company == host:
            job.company = company
        structured_jobs.append(job)

    if adapter is GENERIC:
        jobs = merge_jobs(adapter_jobs, structured_jobs)
    else:
        generic_jobs = parse_generic(page, source_url, company)
        jobs = merge_jobs(merge_jobs(adapter_jobs, generic_jobs), structured_jobs)

    jobs = filter_jobs(jobs, source_url, adapter)
    logger.info("Parsed %d jobs from %s (adapter=%s)", len(jobs), source_url, adapter.name)

    return ParsedSource(source_url=source_url, host=host, jobs=jobs, warnings=warnings, adapter=adapter)
