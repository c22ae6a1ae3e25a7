"""Life at Spotify: search API keyed by category slug, DOM anchors as fallback."""

import logging
import re
from urllib.parse import quote, urlsplit

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import add_unique, block_title, enclosing_block, first_value, name_list, text_value
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import absolute_url, normalize_whitespace

logger = logging.getLogger("job_watch.jobs.lifeatspotify")

API_URL = "https://api.lifeatspotify.com/wp-json/animal/v1/job/search?c={category}"
JOB_BASE_URL = "https://www.lifeatspotify.com/jobs/"
DEFAULT_CATEGORY = "design"

TITLE_FIELDS = ("text", "position_title", "title", "job_title", "name", "role")
URL_FIELDS = ("job_url", "url", "link", "apply_url")
LOCATION_FIELDS = ("location", "city", "place", "location_display")
ARRAY_FIELDS = ("result", "jobs", "results", "items", "data")


def category_from_url(url: str) -> str | None:
    parts = [p for p in urlsplit(url).path.split("/") if p]
    if "job-categories" in parts:
        idx = parts.index("job-categories")
        if idx + 1 < len(parts):
            return parts[idx + 1]
    return None


def find_array(payload):
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for name in ARRAY_FIELDS:
            if isinstance(payload.get(name), list):
                return payload[name]
    return None


def _item_url(item: dict) -> str | None:
    url = first_value(item, URL_FIELDS)
    if isinstance(url, str):
        return url
    slug = item.get("slug") or item.get("id")
    if slug:
        return f"{JOB_BASE_URL}{slug}"
    return None


def _item_location(item: dict) -> str | None:
    location = text_value(first_value(item, LOCATION_FIELDS))
    if location:
        return location
    locations = item.get("locations")
    if isinstance(locations, list) and locations and isinstance(locations[0], dict):
        return text_value(locations[0].get("name") or locations[0].get("location"))
    return None


def _item_tags(item: dict) -> list[str] | None:
    tags = name_list(item.get("categories")) or name_list(item.get("tags"))
    if tags:
        return tags
    main_category = item.get("main_category")
    if isinstance(main_category, dict) and main_category.get("name"):
        return [normalize_whitespace(main_category["name"])]
    return None


def jobs_from_payload(payload, company: str) -> list[JobCandidate]:
    jobs = []
    for item in find_array(payload) or []:
        if not isinstance(item, dict):
            continue
        title = text_value(first_value(item, TITLE_FIELDS))
        url = _item_url(item)
        if not title or not url:
            continue
        jobs.append(JobCandidate(
            title=title,
            company=company,
            location=_item_location(item),
            url=url,
            posted_at=text_value(item.get("date_posted") or item.get("published_at")),
            tags=_item_tags(item),
        ))
    return jobs


class LifeAtSpotifyAdapter(SiteAdapter):
    name = "lifeatspotify"
    hosts = ("lifeatspotify.com",)
    listing_pattern = re.compile(r"lifeatspotify\.com/jobs/[a-z0-9-]+", re.IGNORECASE)

    def fetch_from_api(self, base_url: str, context: ParseContext) -> list[JobCandidate]:
        if context.fetch_json is None:
            return []
        category = category_from_url(base_url) or DEFAULT_CATEGORY
        payload = context.fetch_json(API_URL.format(category=quote(category, safe="")))
        return jobs_from_payload(payload, context.company or "Spotify")

    def parse_dom(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        jobs: list[JobCandidate] = []
        seen: set[str] = set()
        for anchor in page.find_all("a", href=True):
            url = absolute_url(base_url, anchor["href"])
            if not url or not self.is_listing_url(url):
                continue
            title = block_title(enclosing_block(anchor), anchor)
            if not title:
                continue
            add_unique(jobs, seen, JobCandidate(title=title, company=context.company or "Spotify", url=url))
        return jobs

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        try:
            jobs = self.fetch_from_api(base_url, context)
        except Exception as e:
            logger.warning("Spotify job API failed for %s, falling back to page links: %s", base_url, e)
            jobs = []

        if jobs:
            return jobs
        return self.parse_dom(page, base_url, context)
