"""Generic extraction: JSON-LD, embedded hydration state, and DOM heuristics."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import (
    add_unique,
    collect_jobs_from_json,
    enclosing_block,
    block_title,
    job_from_object,
    load_json,
)
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import (
    absolute_url,
    extract_tags,
    find_location,
    find_posted_at,
    matches_job_keywords,
    normalize_whitespace,
)

logger = logging.getLogger("job_watch.jobs.generic")

JOB_TYPES = {"JobPosting", "Job"}
HYDRATION_IDS = ("__NEXT_DATA__", "__NUXT__", "__NUXT_DATA__", "__APOLLO_STATE__")
MAX_EMBEDDED_CANDIDATES = 5
MIN_BLOCK_SCORE = 2


def _has_job_type(item: dict) -> bool:
    types = item.get("@type")
    if isinstance(types, list):
        return any(t in JOB_TYPES for t in types)
    return types in JOB_TYPES


def parse_json_ld(page: BeautifulSoup, base_url: str, company: str | None) -> list[JobCandidate]:
    """schema.org JobPosting blocks, unwrapping @graph and item lists."""
    jobs = []
    for script in page.find_all("script", attrs={"type": "application/ld+json"}):
        data = load_json(script.get_text())
        if data is None:
            continue

        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            if isinstance(item.get("@graph"), list):
                items.extend(node for node in item["@graph"] if isinstance(node, dict))
            if _has_job_type(item):
                job = job_from_object(item, base_url, company)
                if job:
                    jobs.append(job)
            if isinstance(item.get("itemListElement"), list):
                jobs.extend(collect_jobs_from_json(item["itemListElement"], base_url, company))
    return jobs


def embedded_json_candidates(page: BeautifulSoup) -> list[str]:
    """Raw text of hydration payloads, well-known ids first."""
    candidates = []
    for element_id in HYDRATION_IDS:
        element = page.find(id=element_id)
        if element is None:
            continue
        text = element.get_text().strip()
        if text.startswith(("{", "[")):
            candidates.append(text)

    for script in page.find_all("script", attrs={"type": "application/json"}):
        if script.get("id") in HYDRATION_IDS:
            continue
        text = script.get_text().strip()
        if text.startswith("{"):
            candidates.append(text)
    return candidates


def parse_embedded_json(page: BeautifulSoup, base_url: str, company: str | None) -> list[JobCandidate]:
    jobs = []
    parsed = 0
    for text in embedded_json_candidates(page):
        if parsed >= MAX_EMBEDDED_CANDIDATES:
            break
        data = load_json(text)
        if data is None:
            continue
        parsed += 1
        jobs.extend(collect_jobs_from_json(data, base_url, company))
    return jobs


def is_likely_job_anchor(anchor: Tag) -> bool:
    text = normalize_whitespace(anchor.get_text(" "))
    if len(text) < 4:
        return False
    return matches_job_keywords(text) or matches_job_keywords(anchor.get("href") or "")


def score_block(block: Tag) -> int:
    """+2 role keywords in text, +1 any link, +1 any heading."""
    score = 0
    if matches_job_keywords(normalize_whitespace(block.get_text(" "))):
        score += 2
    if block.name == "a" or block.find("a") is not None:
        score += 1
    if block.find(["h1", "h2", "h3"]) is not None:
        score += 1
    return score


def parse_dom(page: BeautifulSoup, base_url: str, company: str | None) -> list[JobCandidate]:
    """Score the blocks around keyword-bearing anchors and read jobs from them."""
    jobs = []
    for anchor in page.find_all("a"):
        if not is_likely_job_anchor(anchor):
            continue

        block = enclosing_block(anchor)
        if score_block(block) < MIN_BLOCK_SCORE:
            continue

        title = block_title(block) or normalize_whitespace(anchor.get_text(" "))
        if not title:
            continue

        url = absolute_url(base_url, anchor.get("href"))
        if not url:
            continue

        block_text = normalize_whitespace(block.get_text(" "))
        tags = extract_tags(block_text)
        jobs.append(
            JobCandidate(
                title=title,
                company=company or None,
                location=find_location(block_text),
                url=url,
                posted_at=find_posted_at(block_text),
                tags=tags or None,
            )
        )
    return jobs


def parse_generic(page: BeautifulSoup, base_url: str, company: str | None = None) -> list[JobCandidate]:
    """Union of structured data, embedded state, and DOM heuristics, in that order."""
    jobs: list[JobCandidate] = []
    seen: set[str] = set()

    for strategy in (parse_json_ld, parse_embedded_json, parse_dom):
        found = strategy(page, base_url, company)
        logger.debug("%s found %d jobs on %s", strategy.__name__, len(found), base_url)
        for job in found:
            add_unique(jobs, seen, job)

    return jobs


class GenericAdapter(SiteAdapter):
    name = "generic"

    def matches_host(self, hostname: str) -> bool:
        return True

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        return parse_generic(page, base_url, context.company)
