"""Browser-like HTTP session and size-capped body reading."""

import logging
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import ReadTimeoutError
from urllib3.util.retry import Retry

from job_watch.errors import FetchError, FetchTimeoutError, UpstreamTooLargeError

logger = logging.getLogger("job_watch.http")

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

HTML_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Language": "en-US,en;q=0.9",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

JSON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
}

CHUNK_SIZE = 64 * 1024


def create_session(max_retries: int = 2, backoff_factor: float = 0.5) -> requests.Session:
    """Create a requests session that retries connection failures only.

    Status codes (429, 3xx, 5xx) are returned to the caller untouched; the
    fetch layer handles them itself so every redirect hop can be vetted.
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=max_retries,
        connect=max_retries,
        read=0,
        status=0,
        redirect=0,
        backoff_factor=backoff_factor,
        allowed_methods=["GET", "POST"],
        raise_on_status=False,
        respect_retry_after_header=False,
    )

    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})

    return session


def remaining_time(deadline: float) -> float:
    """Seconds left before the monotonic deadline; raises once it has passed."""
    left = deadline - time.monotonic()
    if left <= 0:
        raise FetchTimeoutError("Fetch timed out")
    return left


def is_read_timeout(error: requests.RequestException) -> bool:
    """requests reports a read timeout during streaming as a ConnectionError."""
    if isinstance(error, requests.Timeout):
        return True
    cause = error.args[0] if error.args else None
    return isinstance(cause, ReadTimeoutError) or "timed out" in str(error).lower()


def read_limited(response: requests.Response, max_bytes: int, deadline: float | None = None) -> bytes:
    """Read a streamed body, aborting as soon as it grows past max_bytes."""
    content_length = response.headers.get("Content-Length")
    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
        response.close()
        raise UpstreamTooLargeError(max_bytes)

    chunks = []
    total = 0
    try:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if not chunk:
                continue
            total += len(chunk)
            if total > max_bytes:
                raise UpstreamTooLargeError(max_bytes)
            if deadline is not None:
                remaining_time(deadline)
            chunks.append(chunk)
    except requests.RequestException as e:
        if is_read_timeout(e):
            raise FetchTimeoutError(f"Fetch timed out while reading body: {e}") from e
        raise FetchError(f"Connection failed while reading body: {e}") from e
    finally:
        response.close()

    return b"".join(chunks)


def cookie_header(response: requests.Response) -> str:
    """Render cookies set by a response as a Cookie request header value."""
    cookies = getattr(response, "cookies", None)
    if not cookies:
        return ""
    return "; ".join(f"{name}={value}" for name, value in cookies.items())
