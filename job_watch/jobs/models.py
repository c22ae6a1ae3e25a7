"""Job candidate data model."""

from dataclasses import dataclass
from typing import Optional


def strip_query_and_fragment(url: str) -> str:
    return url.split("#", 1)[0].split("?", 1)[0]


@dataclass
class JobCandidate:
    """One job listing as extracted from a page, before it is tracked."""

    title: str
    url: str
    company: Optional[str] = None
    location: Optional[str] = None
    posted_at: Optional[str] = None
    tags: Optional[list[str]] = None

    @property
    def job_key(self) -> str:
        """Stable identity across refreshes: url (sans query/fragment), title, company, location."""
        url = strip_query_and_fragment(self.url or "")
        raw = f"{url}::{self.title or ''}::{self.company or ''}::{self.location or ''}"
        return raw.lower()

    @property
    def dedup_key(self) -> str:
        """Key used to merge results from different extraction strategies."""
        return f"{self.title or ''}::{self.url or ''}".lower()

    def to_dict(self) -> dict:
        """Convert to the wire shape consumed by callers."""
        return {
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "postedAt": self.posted_at,
            "tags": self.tags,
        }
