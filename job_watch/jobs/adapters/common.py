"""Helpers shared by adapters: JSON tree search and DOM block utilities."""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Callable, Iterable, Optional

from bs4 import BeautifulSoup, Tag

from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import absolute_url, extract_tags, normalize_whitespace

logger = logging.getLogger("job_watch.jobs.adapters")

TITLE_FIELDS = ("title", "name", "position", "jobTitle")
URL_FIELDS = ("url", "applyUrl", "apply_url", "link")
LOCATION_FIELDS = ("location", "jobLocation", "address", "city", "place", "locationName")
POSTED_FIELDS = ("datePosted", "postedAt", "publishedAt", "createdAt")

BLOCK_TAGS = ["li", "article", "div", "tr", "section"]

# Upper bound on nodes visited while walking untrusted JSON payloads
MAX_JSON_NODES = 50_000


def first_value(obj: dict, fields: Iterable[str]):
    """Return the first truthy value among fields, mirroring `a || b || c`."""
    for name in fields:
        value = obj.get(name)
        if value:
            return value
    return None


def text_value(value) -> Optional[str]:
    """Reduce a string, number, or schema.org-style object to display text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        return normalize_whitespace(value) or None
    if isinstance(value, list):
        for item in value:
            text = text_value(item)
            if text:
                return text
        return None
    if isinstance(value, dict):
        address = value.get("address")
        if isinstance(address, dict) and address.get("addressLocality"):
            return text_value(address["addressLocality"])
        return text_value(
            value.get("addressLocality") or value.get("name") or value.get("raw") or value.get("location")
        )
    return None


def walk_json(root: Any, visit: Callable[[dict], Optional[Iterable[Any]]], max_nodes: int = MAX_JSON_NODES) -> None:
    """Breadth-first walk over a JSON tree.

    `visit` is called on every object; any extra nodes it returns are queued
    before the object's own values. Lists are flattened, scalars ignored.
    Each container is visited at most once.
    """
    queue = deque([root])
    visited: set[int] = set()
    processed = 0

    while queue and processed < max_nodes:
        node = queue.popleft()
        if not isinstance(node, (dict, list)):
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))
        processed += 1

        if isinstance(node, list):
            queue.extend(node)
            continue

        extra = visit(node)
        if extra:
            queue.extend(extra)
        queue.extend(node.values())

    if queue:
        logger.debug("JSON walk stopped after %d nodes", processed)


def is_job_like(obj: dict) -> bool:
    return bool(isinstance(obj, dict) and first_value(obj, TITLE_FIELDS) and first_value(obj, URL_FIELDS))


def job_from_object(obj: dict, base_url: str, company: Optional[str]) -> Optional[JobCandidate]:
    """Normalize a job-like JSON object into a candidate."""
    title = text_value(first_value(obj, TITLE_FIELDS))
    raw_url = first_value(obj, URL_FIELDS)
    if not title or not isinstance(raw_url, str):
        return None
    url = absolute_url(base_url, raw_url) or raw_url

    location = text_value(first_value(obj, LOCATION_FIELDS))
    posted_at = text_value(first_value(obj, POSTED_FIELDS))

    tag_source = " ".join(
        str(part) for part in (title, obj.get("department"), obj.get("team"), obj.get("category"))
        if isinstance(part, str) and part
    )
    tags = extract_tags(tag_source)

    return JobCandidate(
        title=title,
        company=company or None,
        location=location,
        url=url,
        posted_at=posted_at,
        tags=tags or None,
    )


def collect_jobs_from_json(data: Any, base_url: str, company: Optional[str]) -> list[JobCandidate]:
    """Search a JSON tree for job-like objects, deduplicated by title and url."""
    jobs: list[JobCandidate] = []
    seen: set[str] = set()

    def visit(node: dict):
        if not is_job_like(node):
            return None
        job = job_from_object(node, base_url, company)
        if job and job.dedup_key not in seen:
            seen.add(job.dedup_key)
            jobs.append(job)
        return None

    walk_json(data, visit)
    return jobs


def load_json(text: str):
    """Parse JSON text, returning None for empty or malformed input."""
    text = (text or "").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def script_json(page: BeautifulSoup, element_id: str):
    element = page.find(id=element_id)
    if element is None:
        return None
    return load_json(element.get_text())


def enclosing_block(anchor: Tag) -> Tag:
    """Nearest block-level ancestor of an anchor, or the anchor itself."""
    return anchor.find_parent(BLOCK_TAGS) or anchor


def block_title(block: Tag, anchor: Optional[Tag] = None) -> Optional[str]:
    """First non-empty of h1, h2, h3, then the anchor text."""
    for name in ("h1", "h2", "h3"):
        heading = block.find(name)
        if heading is not None:
            title = normalize_whitespace(heading.get_text(" "))
            if title:
                return title
    link = anchor if anchor is not None else block.find("a")
    if link is not None:
        title = normalize_whitespace(link.get_text(" "))
        if title:
            return title
    return None


def add_unique(jobs: list[JobCandidate], seen: set[str], job: Optional[JobCandidate]) -> None:
    if job is None or job.dedup_key in seen:
        return
    seen.add(job.dedup_key)
    jobs.append(job)


def name_list(values) -> Optional[list[str]]:
    """Tag names from a list of strings or {"name": ...} objects."""
    if not isinstance(values, list):
        return None
    names = []
    for value in values:
        name = value.get("name") if isinstance(value, dict) else value
        name = normalize_whitespace(name) if isinstance(name, (str, int)) else ""
        if name:
            names.append(name)
    return names or None
