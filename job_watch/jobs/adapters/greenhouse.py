"""Greenhouse hosted job boards."""

import re

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import add_unique, enclosing_block
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import absolute_url, normalize_whitespace

JOB_URL = re.compile(r"/jobs/", re.IGNORECASE)


class GreenhouseAdapter(SiteAdapter):
    name = "greenhouse"
    hosts = ("boards.greenhouse.io", "job-boards.greenhouse.io")

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        jobs: list[JobCandidate] = []
        seen: set[str] = set()

        for anchor in page.find_all("a", href=True):
            url = absolute_url(base_url, anchor["href"])
            if not url or not JOB_URL.search(url):
                continue

            block = enclosing_block(anchor)
            heading = block.find(["h1", "h2", "h3"])
            title = normalize_whitespace(heading.get_text(" ")) if heading else ""
            title = title or normalize_whitespace(anchor.get_text(" "))
            if not title or title.lower() == "apply":
                continue

            location_elem = block.select_one(".location")
            location = normalize_whitespace(location_elem.get_text(" ")) if location_elem else ""

            add_unique(jobs, seen, JobCandidate(
                title=title,
                company=context.company or None,
                location=location or None,
                url=url,
            ))

        return jobs
