"""Revolut careers: Next.js data route, then hydration payload, then page links."""

import logging
import re
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import (
    add_unique,
    block_title,
    enclosing_block,
    first_value,
    name_list,
    script_json,
    text_value,
    walk_json,
)
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import WORK_MODE, CITY_STATE, CITY_COUNTRY, absolute_url, normalize_whitespace

logger = logging.getLogger("job_watch.jobs.revolut")

TITLE_FIELDS = ("title", "name", "positionTitle", "jobTitle", "role")
URL_FIELDS = ("url", "jobUrl", "applyUrl", "apply_url", "link", "permalink")
SLUG_FIELDS = ("slug", "id", "requisitionId", "uuid")
LOCATION_FIELDS = ("location", "location_display", "city", "place", "country")
POSTED_FIELDS = ("datePosted", "postedAt", "published_at", "created_at")
POSITION_PATH = re.compile(r"/careers/position/", re.IGNORECASE)


def _origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def locale_path(base_url: str, next_data: dict | None) -> str:
    """Page path as used in /_next/data/<buildId>/<path>.json."""
    pathname = urlsplit(base_url).path.rstrip("/")
    if pathname.startswith("/careers"):
        locale = (next_data or {}).get("locale") or (next_data or {}).get("defaultLocale")
        return f"{locale}/careers" if locale else "careers"

    parts = [p for p in pathname.split("/") if p]
    if len(parts) >= 2:
        return "/".join(parts[:2])
    return "careers"


def _location_text(text: str) -> str | None:
    cleaned = normalize_whitespace(text)
    for pattern in (WORK_MODE, CITY_STATE, CITY_COUNTRY):
        match = pattern.search(cleaned)
        if match:
            return match.group(0)
    return None


class RevolutAdapter(SiteAdapter):
    name = "revolut"
    hosts = ("revolut.com",)

    def job_from_object(self, obj: dict, origin: str, company: str) -> JobCandidate | None:
        title = text_value(first_value(obj, TITLE_FIELDS))
        raw_url = first_value(obj, URL_FIELDS)
        if isinstance(raw_url, str):
            url = absolute_url(origin, raw_url)
        else:
            slug = first_value(obj, SLUG_FIELDS)
            url = f"{origin}/careers/{slug}" if slug else None
        if not title or not url:
            return None

        location = text_value(first_value(obj, LOCATION_FIELDS))
        if not location:
            locations = obj.get("locations")
            if isinstance(locations, list) and locations:
                location = text_value(locations[0])
        if not location:
            location = text_value(obj.get("office"))

        return JobCandidate(
            title=title,
            company=company,
            location=location,
            url=url,
            posted_at=text_value(first_value(obj, POSTED_FIELDS)),
            tags=name_list(obj.get("categories")) or name_list(obj.get("tags")),
        )

    def collect(self, data, origin: str, company: str) -> list[JobCandidate]:
        jobs: list[JobCandidate] = []
        seen: set[str] = set()

        def visit(node: dict):
            if first_value(node, TITLE_FIELDS) and (first_value(node, URL_FIELDS) or first_value(node, SLUG_FIELDS)):
                add_unique(jobs, seen, self.job_from_object(node, origin, company))
            return None

        walk_json(data, visit)
        return jobs

    def parse_dom(self, page: BeautifulSoup, origin: str, company: str) -> list[JobCandidate]:
        jobs: list[JobCandidate] = []
        seen: set[str] = set()
        for anchor in page.find_all("a", href=POSITION_PATH):
            url = absolute_url(origin, anchor.get("href"))
            if not url:
                continue
            block = enclosing_block(anchor)
            title = block_title(block, anchor)
            if not title:
                continue
            add_unique(jobs, seen, JobCandidate(
                title=title,
                company=company,
                location=_location_text(block.get_text(" ")),
                url=url,
            ))
        return jobs

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        company = context.company or "Revolut"
        origin = _origin(base_url)
        next_data = script_json(page, "__NEXT_DATA__")
        if not isinstance(next_data, dict):
            next_data = None

        build_id = next_data.get("buildId") if next_data else None
        if build_id and context.fetch_json is not None:
            query = urlsplit(base_url).query
            data_url = f"{origin}/_next/data/{build_id}/{locale_path(base_url, next_data)}.json"
            if query:
                data_url += f"?{query}"
            try:
                payload = context.fetch_json(
                    data_url,
                    headers={"Referer": base_url, "Cookie": context.cookies or ""},
                )
                jobs = self.collect(payload, origin, company)
                if jobs:
                    return jobs
            except Exception as e:
                logger.warning("Revolut data route %s failed, using page payload: %s", data_url, e)

        if next_data:
            jobs = self.collect(next_data, origin, company)
            if jobs:
                return jobs

        return self.parse_dom(page, origin, company)
