"""Strategy selection and fallback across Direct, Zyte, and ScrapingBee."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import urlsplit

import requests

from job_watch.config import AppConfig
from job_watch.errors import BlockedAddressError, JobWatchError
from job_watch.fetch.direct import DirectFetcher
from job_watch.fetch.providers import ScrapingBeeFetcher, ZyteFetcher, extract_structured_jobs
from job_watch.jobs.models import JobCandidate

logger = logging.getLogger("job_watch.fetch.chain")

DIRECT = "direct"
ZYTE = "zyte"
SCRAPINGBEE = "scrapingbee"

# Waterfall order once the first choice has failed
FALLBACK_ORDER = (DIRECT, ZYTE, SCRAPINGBEE)


@dataclass
class FetchResult:
    html: str
    cookies: str
    final_url: str
    structured_jobs: list[JobCandidate] = field(default_factory=list)
    fetch_json: Optional[Callable] = None
    strategy: str = DIRECT


def plan_strategies(config: AppConfig) -> list[str]:
    """Ordered list of strategies to attempt for one page.

    An always-use provider goes first and Direct is never attempted after it;
    remaining configured providers follow in waterfall order.
    """
    zyte_ready = config.zyte.configured
    bee_ready = config.scrapingbee.configured

    if zyte_ready and config.zyte.always:
        first = ZYTE
        allowed = {ZYTE, SCRAPINGBEE}
    elif bee_ready and config.scrapingbee.always:
        first = SCRAPINGBEE
        allowed = {ZYTE, SCRAPINGBEE}
    else:
        first = DIRECT
        allowed = {DIRECT, ZYTE, SCRAPINGBEE}

    plan = [first]
    for name in FALLBACK_ORDER:
        if name in plan or name not in allowed:
            continue
        if name == ZYTE and not zyte_ready:
            continue
        if name == SCRAPINGBEE and not bee_ready:
            continue
        plan.append(name)
    return plan


def fetch_with_pipeline(
    url: str,
    config: AppConfig,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """Fetch one page, falling through strategies until one succeeds.

    The last strategy's error is raised when all of them fail. A blocked
    address is never retried through a provider.
    """
    direct = DirectFetcher(config.fetch, session=session)
    hostname = urlsplit(url).hostname or ""
    plan = plan_strategies(config)
    last_error: Optional[Exception] = None

    for strategy in plan:
        try:
            if strategy == DIRECT:
                page = direct.fetch_html(url)
                result = FetchResult(
                    html=page.html,
                    cookies=page.cookies,
                    final_url=page.final_url,
                    strategy=DIRECT,
                )
            elif strategy == ZYTE:
                page = ZyteFetcher(config.zyte, config.fetch, session=session).fetch(url)
                result = FetchResult(
                    html=page.html,
                    cookies=page.cookies,
                    final_url=page.final_url,
                    structured_jobs=extract_structured_jobs(page.structured_data, hostname),
                    strategy=ZYTE,
                )
            else:
                page = ScrapingBeeFetcher(config.scrapingbee, config.fetch, session=session).fetch(url)
                result = FetchResult(
                    html=page.html,
                    cookies=page.cookies,
                    final_url=page.final_url,
                    strategy=SCRAPINGBEE,
                )
        except BlockedAddressError:
            raise
        except JobWatchError as e:
            last_error = e
            logger.warning("Fetch via %s failed for %s: %s", strategy, url, e)
            continue

        if strategy != plan[0]:
            logger.info("Fetched %s via fallback %s", url, strategy)
        else:
            logger.debug("Fetched %s via %s", url, strategy)
        result.fetch_json = direct.fetch_json
        return result

    raise last_error
