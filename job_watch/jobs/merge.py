"""Merging, post-filtering, and page-level hints for extracted jobs."""

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import SiteAdapter
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import normalize_whitespace

COMPANY_META = (
    ("property", "og:site_name"),
    ("name", "application-name"),
    ("name", "apple-mobile-web-app-title"),
    ("name", "twitter:site"),
)

MIN_LINKS = 5
MIN_TEXT_CHARS = 200
LARGE_PAGE_RATIO = 0.9


def merge_jobs(primary: list[JobCandidate], secondary: list[JobCandidate]) -> list[JobCandidate]:
    """Union two job lists; on a title+url collision the primary entry wins."""
    merged: list[JobCandidate] = []
    seen: set[str] = set()
    for job in [*primary, *secondary]:
        key = job.dedup_key
        if key in seen:
            continue
        seen.add(key)
        merged.append(job)
    return merged


def _same_page(url: str, page_url: str) -> bool:
    return url.split("#", 1)[0].rstrip("/") == page_url.split("#", 1)[0].rstrip("/")


def filter_jobs(jobs: list[JobCandidate], page_url: str, adapter: SiteAdapter) -> list[JobCandidate]:
    """Drop jobs pointing back at the page itself, or off the host's listing pattern."""
    kept = []
    for job in jobs:
        if not job.url or _same_page(job.url, page_url):
            continue
        if not adapter.is_listing_url(job.url):
            continue
        kept.append(job)
    return kept


def company_from_meta(page: BeautifulSoup, hostname: str) -> str:
    for attr, value in COMPANY_META:
        tag = page.find("meta", attrs={attr: value})
        content = normalize_whitespace(tag.get("content")) if tag else ""
        if content:
            return content.lstrip("@")
    return hostname


def collect_warnings(html: str, page: BeautifulSoup, max_bytes: int) -> list[str]:
    warnings = []
    link_count = len(page.find_all("a"))
    text = normalize_whitespace(page.get_text(" "))
    if link_count < MIN_LINKS or len(text) < MIN_TEXT_CHARS:
        warnings.append(
            "Page appears to be rendered with JavaScript. Job listings may be missing without a rendering provider."
        )
    if len(html.encode("utf-8")) > max_bytes * LARGE_PAGE_RATIO:
        warnings.append("Page is very large; parsing may be incomplete.")
    return warnings
