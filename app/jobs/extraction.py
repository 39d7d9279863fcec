"""
Turn raw search hits into JobRecords.

The model is asked for a plain-text grammar instead of JSON:

    Title: ...
    Company: ...
    Location: ...
    Description: ...
    URL: ...
    ---

Parsing is tolerant. Missing fields fall back to defaults and blocks without a
title and a company are dropped; nothing here raises on odd model output.
"""
from __future__ import annotations
import logging
import re
from typing import Iterable
from urllib.parse import quote

from app.schemas import JobRecord, SearchResult
from app.jobs.normalize import full_query as make_full_query, generate_job_id

logger = logging.getLogger(__name__)

BLOCK_DELIMITER = "---"
NO_JOBS_SENTINEL = "NO_JOBS_FOUND"
DEFAULT_LOCATION = "Remote / Unspecified"
DEFAULT_DESCRIPTION = "No description provided."
MIN_URL_LENGTH = 10

# Labels may carry markdown bold ("**Title:** ..."); values stop at end of line.
_TITLE_RE = re.compile(r"^[ \t*]*Title:[ \t*]*(.*)$", re.IGNORECASE | re.MULTILINE)
_COMPANY_RE = re.compile(r"^[ \t*]*Company:[ \t*]*(.*)$", re.IGNORECASE | re.MULTILINE)
_LOCATION_RE = re.compile(r"^[ \t*]*Location:[ \t*]*(.*)$", re.IGNORECASE | re.MULTILINE)
_URL_RE = re.compile(r"^[ \t*]*URL:[ \t*]*(.*)$", re.IGNORECASE | re.MULTILINE)
# Description may wrap over several lines, up to the URL line.
_DESCRIPTION_RE = re.compile(
    r"^[ \t*]*Description:[ \t*]*(.*?)(?=\n[ \t*]*URL:|\Z)",
    re.IGNORECASE | re.MULTILINE | re.DOTALL,
)

PROMPT_TEMPLATE = """I have performed a Google Search for job openings: "{full_query}".
Here are the search results:
---
{context}
---
TASK: Extract ONLY actual job postings from the search results.

IGNORE these types of results:
- Job board aggregators (Indeed, ZipRecruiter, LinkedIn job search pages)
- Career advice articles or general occupation information
- Reddit discussions or forums about jobs

ONLY EXTRACT results that are:
- Direct job postings from a single employer's career page
- Specific job listings with a company name and job title
- Currently accepting applications

If you cannot find ANY actual job postings (only meta-information), respond with: {sentinel}

Format the output EXACTLY as follows for each job, each field on its own line, using "---" as a separator:

Title: [Exact Job Title]
Company: [Official Company Name]
Location: [City, State]
Description: [Provide a comprehensive job description based on the snippets. Aim for at least 4-6 sentences.]
URL: [The direct application link from the search results]
---"""


def format_search_context(results: Iterable[SearchResult]) -> str:
    return "\n\n".join(
        f"Source: {r.link}\nTitle: {r.title}\nSnippet: {r.snippet}" for r in results
    )


def build_extraction_prompt(full_query: str, results: Iterable[SearchResult]) -> str:
    return PROMPT_TEMPLATE.format(
        full_query=full_query,
        context=format_search_context(results),
        sentinel=NO_JOBS_SENTINEL,
    )


def query_fallback_url(full_query: str) -> str:
    """Default used at extraction time when the model gave no usable URL."""
    return "https://www.google.com/search?q=" + quote(f"{full_query} application", safe="")


def is_usable_url(url: str | None) -> bool:
    return bool(url) and "[" not in url and len(url) >= MIN_URL_LENGTH


def _field(pattern: re.Pattern, block: str) -> str:
    m = pattern.search(block)
    return m.group(1).strip() if m else ""


def parse_job_block(block: str, fallback_url: str) -> JobRecord | None:
    title = _field(_TITLE_RE, block)
    company = _field(_COMPANY_RE, block)
    if not title or not company:
        return None

    url = _field(_URL_RE, block)
    if not is_usable_url(url):
        url = fallback_url

    return JobRecord(
        id=generate_job_id(title, company),
        title=title,
        company=company,
        location=_field(_LOCATION_RE, block) or DEFAULT_LOCATION,
        description=_field(_DESCRIPTION_RE, block) or DEFAULT_DESCRIPTION,
        url=url,
    )


def parse_jobs_response(text: str, full_query: str) -> list[JobRecord]:
    fallback_url = query_fallback_url(full_query)
    blocks = [b for b in (text or "").split(BLOCK_DELIMITER) if b.strip()]
    if len(blocks) == 1 and blocks[0].strip() == NO_JOBS_SENTINEL:
        return []

    jobs: list[JobRecord] = []
    for block in blocks:
        job = parse_job_block(block, fallback_url)
        if job is not None:
            jobs.append(job)
    logger.info("Parsed %d jobs from %d blocks", len(jobs), len(blocks))
    return jobs


def extract_jobs(query: str, location: str, results: list[SearchResult], completion_client) -> list[JobRecord]:
    """Run the completion call and parse it. Raises UpstreamError only if the call fails."""
    fq = make_full_query(query, location)
    prompt = build_extraction_prompt(fq, results)
    text = completion_client.complete(prompt)
    return parse_jobs_response(text, fq)
