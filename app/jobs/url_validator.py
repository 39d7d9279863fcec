from __future__ import annotations
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable
from urllib.parse import quote

import requests

from app.config import settings
from app.schemas import JobRecord
from app.jobs.extraction import is_usable_url

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; JobSearchCache/1.0)"


def company_fallback_url(company: str, title: str) -> str:
    """Default used after probing, when a job's URL turned out dead."""
    return "https://www.google.com/search?q=" + quote(f"{company} careers {title} apply", safe="")


def probe_url(url: str, timeout: float = settings.URL_PROBE_TIMEOUT_SECONDS) -> bool:
    """HEAD the URL, following redirects; True only on a final 2xx."""
    try:
        r = requests.head(
            url,
            allow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )
    except requests.RequestException:
        return False
    return 200 <= r.status_code < 300


def _safe_probe(probe: Callable[[str], bool], url: str) -> bool:
    # empty, short or placeholder URLs are never worth a request
    if not is_usable_url(url):
        return False
    try:
        return bool(probe(url))
    except Exception as e:
        logger.debug("Probe raised for %s: %s", url, e)
        return False


def validate_and_fix_urls(
    jobs: list[JobRecord],
    probe: Callable[[str], bool] = probe_url,
    deadline_seconds: float = settings.URL_PROBE_TIMEOUT_SECONDS,
) -> list[JobRecord]:
    """Probe every job URL at once and swap dead ones for a search fallback.

    The whole batch gets ``deadline_seconds`` of wall-clock time; a probe
    still running then counts as dead.
    Never raises. Output order matches input order.
    """
    if not jobs:
        return []
    logger.info("Validating %d job URLs", len(jobs))

    # one worker per job: batches come from a single completion and stay small
    pool = ThreadPoolExecutor(max_workers=len(jobs))
    try:
        futures = [pool.submit(_safe_probe, probe, j.url) for j in jobs]
        deadline = time.monotonic() + deadline_seconds
        verdicts = []
        for job, future in zip(jobs, futures):
            try:
                verdicts.append(future.result(timeout=max(0.0, deadline - time.monotonic())))
            except FutureTimeout:
                logger.debug("Probe for %s missed the deadline", job.url)
                verdicts.append(False)
    finally:
        # stragglers finish on their own; their verdicts are already discarded
        pool.shutdown(wait=False, cancel_futures=True)

    out: list[JobRecord] = []
    fixed = 0
    for job, ok in zip(jobs, verdicts):
        if ok:
            out.append(job)
        else:
            fixed += 1
            out.append(job.model_copy(update={"url": company_fallback_url(job.company, job.title)}))
    logger.info("URL validation complete: %d valid, %d replaced with fallback", len(jobs) - fixed, fixed)
    return out


def get_url_probe() -> Callable[[str], bool]:
    return probe_url
