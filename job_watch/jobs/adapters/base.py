"""Base class and parse context shared by all extraction adapters."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from bs4 import BeautifulSoup

from job_watch.jobs.models import JobCandidate

FetchJson = Callable[..., Any]


@dataclass
class ParseContext:
    company: Optional[str] = None
    fetch_json: Optional[FetchJson] = None
    cookies: str = ""
    final_url: Optional[str] = None


class SiteAdapter(ABC):
    """Extraction strategy for one family of career sites."""

    name: str = "base"
    # Exact hostnames; a host also matches when it is a subdomain of one
    hosts: tuple[str, ...] = ()
    # Canonical per-listing URL shape, for hosts whose pages link noisy hubs
    listing_pattern: Optional[re.Pattern] = None

    def matches_host(self, hostname: str) -> bool:
        host = (hostname or "").lower().rstrip(".")
        return any(host == h or host.endswith("." + h) for h in self.hosts)

    def is_listing_url(self, url: str) -> bool:
        if self.listing_pattern is None:
            return True
        return bool(url and self.listing_pattern.search(url))

    @abstractmethod
    def parse(self, page: BeautifulSoup, base_url: str, context: ParseContext) -> list[JobCandidate]:
        """Return job candidates found on the page; may raise on malformed input."""
