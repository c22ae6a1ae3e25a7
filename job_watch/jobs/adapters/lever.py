"""Lever hosted job boards (jobs.lever.co)."""

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import add_unique
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import absolute_url, normalize_whitespace


class LeverAdapter(SiteAdapter):
    name = "lever"
    hosts = ("jobs.lever.co",)

    def matches_host(self, hostname: str) -> bool:
        return (hostname or "").lower() in self.hosts

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        jobs: list[JobCandidate] = []
        seen: set[str] = set()

        for anchor in page.select("a.posting-title[href]"):
            url = absolute_url(base_url, anchor.get("href"))
            if not url:
                continue

            title_elem = anchor.select_one(".posting-title__text") or anchor.find("h5")
            title = normalize_whitespace(title_elem.get_text(" ")) if title_elem else ""
            title = title or normalize_whitespace(anchor.get_text(" "))
            if not title or title.lower() == "apply":
                continue

            # Last category is the location, the rest are team/commitment tags
            container = anchor.find_parent(class_="posting")
            categories = []
            if container is not None:
                categories = [
                    text for text in (
                        normalize_whitespace(span.get_text(" "))
                        for span in container.select(".posting-categories span")
                    ) if text
                ]

            add_unique(jobs, seen, JobCandidate(
                title=title,
                company=context.company or None,
                location=categories[-1] if categories else None,
                url=url,
                tags=categories[:-1] or None,
            ))

        return jobs
