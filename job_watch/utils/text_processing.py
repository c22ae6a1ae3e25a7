"""Text heuristics for job blocks: role keywords, location, posting date, tags."""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

# Role vocabulary used to spot job anchors and score their blocks
JOB_KEYWORDS = re.compile(
    r"\b(design|designer|ux|ui|product design|visual|graphic|interaction|content design|researcher|creative)\b",
    re.IGNORECASE,
)

WORK_MODE = re.compile(r"\b(Remote|Hybrid|On[- ]?site)\b", re.IGNORECASE)
CITY_STATE = re.compile(r"\b[A-Z][a-zA-Z]+,\s?[A-Z]{2}\b")
CITY_COUNTRY = re.compile(r"\b[A-Z][a-zA-Z]+,\s?[A-Z][a-zA-Z]+\b")
LOCATION_LABEL = re.compile(r"Location:\s*([^|]+)", re.IGNORECASE)

RELATIVE_DATE = re.compile(r"\b(\d+\s?(?:day|week|month)s?\s?ago)\b", re.IGNORECASE)
ABSOLUTE_DATE = re.compile(
    r"\b(\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}/\d{2,4}|[A-Z][a-z]{2,8}\s\d{1,2},\s\d{4})\b"
)
POSTED_LABEL = re.compile(r"Posted\s*:?\s*([^|]+)", re.IGNORECASE)

# Label captures run to the next "|" and can swallow a whole block
LABEL_MAX_LENGTH = 80

# (substring, tag) in output order
TAG_VOCABULARY = [
    ("ux", "UX"),
    ("ui", "UI"),
    ("product", "Product"),
    ("research", "Research"),
    ("visual", "Visual"),
    ("graphic", "Graphic"),
]


def normalize_whitespace(text) -> str:
    if text is None:
        return ""
    return re.sub(r"\s+", " ", str(text)).strip()


def absolute_url(base_url: str, href) -> Optional[str]:
    """Resolve href against base_url; None for empty or non-web links."""
    if not href or not isinstance(href, str):
        return None
    href = href.strip()
    if not href or href.startswith("#") or href.lower().startswith(("javascript:", "mailto:", "tel:")):
        return None
    try:
        url = urljoin(base_url, href)
    except ValueError:
        return None
    if urlsplit(url).scheme not in ("http", "https"):
        return None
    return url


def clip_label(value: str, max_length: int = LABEL_MAX_LENGTH) -> Optional[str]:
    """Trim a label capture, cutting long values at the last word boundary."""
    value = value.strip()
    if len(value) > max_length:
        cut = value[:max_length]
        value = cut.rsplit(" ", 1)[0] if " " in cut else cut
    return value or None


def matches_job_keywords(text: str) -> bool:
    return bool(JOB_KEYWORDS.search(text or ""))


def find_location(text: str) -> Optional[str]:
    """First match wins: work mode, "City, ST", "City, Country", "Location:" label."""
    cleaned = normalize_whitespace(text)

    match = WORK_MODE.search(cleaned)
    if match:
        return match.group(0)

    match = CITY_STATE.search(cleaned)
    if match:
        return match.group(0)

    match = CITY_COUNTRY.search(cleaned)
    if match:
        return match.group(0)

    match = LOCATION_LABEL.search(cleaned)
    if match:
        return clip_label(match.group(1))

    return None


def find_posted_at(text: str) -> Optional[str]:
    """First match wins: "N days ago", an absolute date, a "Posted:" label."""
    cleaned = normalize_whitespace(text)

    match = RELATIVE_DATE.search(cleaned)
    if match:
        return match.group(1)

    match = ABSOLUTE_DATE.search(cleaned)
    if match:
        return match.group(1)

    match = POSTED_LABEL.search(cleaned)
    if match:
        return clip_label(match.group(1))

    return None


def extract_tags(text: str) -> list[str]:
    lower = (text or "").lower()
    return [tag for needle, tag in TAG_VOCABULARY if needle in lower]
