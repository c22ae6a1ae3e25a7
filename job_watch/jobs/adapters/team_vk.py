"""VK team careers (team.vk.company): vacancies straight from the Next.js payload."""

from urllib.parse import urljoin

from bs4 import BeautifulSoup

from job_watch.jobs.adapters.base import ParseContext, SiteAdapter
from job_watch.jobs.adapters.common import name_list, script_json
from job_watch.jobs.models import JobCandidate
from job_watch.utils.text_processing import normalize_whitespace


def _name(value) -> str | None:
    # Usually {"name": ...}; some payloads inline the plain string
    if isinstance(value, dict):
        value = value.get("name")
    if not isinstance(value, (str, int)):
        return None
    return normalize_whitespace(value) or None


def _vacancy_url(base_url: str, vacancy_id) -> str | None:
    if vacancy_id in (None, ""):
        return None
    return urljoin(base_url, f"/vacancy/{vacancy_id}/")


class TeamVkAdapter(SiteAdapter):
    name = "team.vk.company"
    hosts = ("team.vk.company",)

    def matches_host(self, hostname: str) -> bool:
        return (hostname or "").lower() in self.hosts

    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        data = script_json(page, "__NEXT_DATA__")
        if not isinstance(data, dict):
            return []

        props = data.get("props")
        page_props = props.get("pageProps") if isinstance(props, dict) else None
        if not isinstance(page_props, dict):
            return []
        vacancies = page_props.get("initialVacancies") or page_props.get("vacancies") or []
        if not isinstance(vacancies, list):
            return []

        jobs = []
        for item in vacancies:
            if not isinstance(item, dict):
                continue
            title = normalize_whitespace(item.get("title"))
            url = _vacancy_url(base_url, item.get("id"))
            if not title or not url:
                continue

            group = _name(item.get("group"))
            town = _name(item.get("town"))
            posted_at = item.get("published_at") or item.get("created_at")

            jobs.append(JobCandidate(
                title=title,
                company=group or context.company or None,
                location=town,
                url=url,
                posted_at=normalize_whitespace(posted_at) or None,
                tags=name_list(item.get("tags")),
            ))

        return jobs
