"""Tests for merging, post-filtering, and end-to-end page parsing."""

import json

import pytest
from bs4 import BeautifulSoup

from job_watch.config import AppConfig, ZyteConfig
from job_watch.errors import BlockedAddressError, InvalidInputError, UpstreamHttpError
from job_watch.jobs.adapters import GENERIC, LifeAtSpotifyAdapter, SiteAdapter
from job_watch.jobs.merge import collect_warnings, company_from_meta, filter_jobs, merge_jobs
from job_watch.jobs.models import JobCandidate
from job_watch.jobs.parser import ADAPTER_FAILED_WARNING, parse_source_url, validate_source_url

from conftest import PUBLIC_IP, FakeResponse, FakeSession

PAGE = f"http://{PUBLIC_IP}/careers"


def job(title, url, **kwargs):
    return JobCandidate(title=title, url=url, **kwargs)


def career_page(body: str, site_name: str = "Acme") -> str:
    return (
        f'<html><head><meta property="og:site_name" content="{site_name}"></head>'
        f"<body>{body}</body></html>"
    )


class TestMergeJobs:
    def test_primary_wins_ties(self):
        primary = [job("Designer", "https://x.com/1", location="Remote")]
        secondary = [job("designer", "https://X.com/1", location="Berlin"), job("Researcher", "https://x.com/2")]
        merged = merge_jobs(primary, secondary)
        assert [j.location for j in merged] == ["Remote", None]
        assert len(merged) == 2

    def test_empty_inputs(self):
        assert merge_jobs([], []) == []


class TestFilterJobs:
    def test_drops_page_itself_and_empty_urls(self):
        jobs = [job("Self", PAGE), job("Self slash", PAGE + "/"), job("Blank", ""), job("Real", f"{PAGE}/1")]
        assert [j.title for j in filter_jobs(jobs, PAGE, GENERIC)] == ["Real"]

    def test_listing_pattern_applied(self):
        jobs = [
            job("Hub", "https://www.lifeatspotify.com/job-categories/design"),
            job("Listing", "https://www.lifeatspotify.com/jobs/product-designer"),
        ]
        kept = filter_jobs(jobs, "https://www.lifeatspotify.com/", LifeAtSpotifyAdapter())
        assert [j.title for j in kept] == ["Listing"]


class TestPageHints:
    def test_company_from_meta_order(self):
        page = BeautifulSoup(
            '<meta name="twitter:site" content="@acme"><meta name="application-name" content="Acme Jobs">',
            "lxml",
        )
        assert company_from_meta(page, "x.com") == "Acme Jobs"

    def test_company_twitter_handle_stripped(self):
        page = BeautifulSoup('<meta name="twitter:site" content="@acme">', "lxml")
        assert company_from_meta(page, "x.com") == "acme"

    def test_company_falls_back_to_host(self):
        assert company_from_meta(BeautifulSoup("<p></p>", "lxml"), "x.com") == "x.com"

    def test_sparse_page_warns_about_javascript(self):
        html = "<div id='root'></div>"
        warnings = collect_warnings(html, BeautifulSoup(html, "lxml"), 1000)
        assert any("JavaScript" in w for w in warnings)

    def test_rich_page_no_warnings(self):
        html = "".join(f"<p><a href='/{i}'>Link {i}</a> {'text ' * 20}</p>" for i in range(6))
        assert collect_warnings(html, BeautifulSoup(html, "lxml"), 10_000_000) == []

    def test_large_page_warns(self):
        html = "x" * 950
        warnings = collect_warnings(html, BeautifulSoup(html, "lxml"), 1000)
        assert any("very large" in w for w in warnings)


class TestValidateSourceUrl:
    @pytest.mark.parametrize("url", ["ftp://x.com/jobs", "not a url", "", "http://"])
    def test_rejects(self, url):
        with pytest.raises(InvalidInputError):
            validate_source_url(url)

    def test_normalizes_host(self):
        assert validate_source_url("  https://X.com/jobs ") == ("https://X.com/jobs", "x.com")


class ExplodingAdapter(SiteAdapter):
    name = "exploding"

    def parse(self, page, base_url, context):
        raise ValueError("unexpected markup")


class TestParseSourceUrl:
    def test_generic_page(self):
        body = (
            '<script type="application/ld+json">'
            + json.dumps({"@type": "JobPosting", "title": "Senior Designer", "url": f"{PAGE}/42"})
            + "</script>"
            + f'<li><h3>Careers home</h3><a href="{PAGE}">All design jobs</a></li>'
        )
        session = FakeSession({PAGE: FakeResponse(200, career_page(body))})
        parsed = parse_source_url(PAGE, AppConfig(), session=session)

        assert parsed.host == PUBLIC_IP
        assert parsed.adapter is GENERIC
        assert [(j.title, j.url, j.company) for j in parsed.jobs] == [("Senior Designer", f"{PAGE}/42", "Acme")]
        assert any("JavaScript" in w for w in parsed.warnings)

    def test_invalid_and_blocked_urls_rejected_before_fetch(self):
        session = FakeSession()
        with pytest.raises(InvalidInputError):
            parse_source_url("file:///etc/passwd", AppConfig(), session=session)
        with pytest.raises(BlockedAddressError):
            parse_source_url("http://192.168.1.1/jobs", AppConfig(), session=session)
        assert session.calls == []

    def test_fetch_errors_propagate(self):
        session = FakeSession({PAGE: FakeResponse(500)})
        with pytest.raises(UpstreamHttpError):
            parse_source_url(PAGE, AppConfig(), session=session)

    def test_adapter_failure_degrades_to_generic(self, monkeypatch):
        monkeypatch.setattr("job_watch.jobs.parser.get_adapter", lambda host: ExplodingAdapter())
        body = '<li><h3>UX Designer</h3><a href="/jobs/1">UX Designer</a></li>'
        session = FakeSession({PAGE: FakeResponse(200, career_page(body))})
        parsed = parse_source_url(PAGE, AppConfig(), session=session)

        assert ADAPTER_FAILED_WARNING in parsed.warnings
        assert [j.url for j in parsed.jobs] == [f"http://{PUBLIC_IP}/jobs/1"]

    def test_structured_jobs_merged_with_page_company(self):
        config = AppConfig(zyte=ZyteConfig(api_key="zk"))
        posting = {"jobTitle": "Visual Designer", "url": f"http://{PUBLIC_IP}/jobs/7"}
        session = FakeSession({
            PAGE: FakeResponse(503),
            ZyteConfig.api_url: FakeResponse.json_body({
                "browserHtml": career_page("<p>Loading</p>", site_name="Globex"),
                "jobPosting": posting,
            }),
        })
        parsed = parse_source_url(PAGE, config, session=session)
        assert [(j.title, j.company) for j in parsed.jobs] == [("Visual Designer", "Globex")]
