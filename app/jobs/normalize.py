from __future__ import annotations
import re

DEFAULT_CACHE_KEY = "default"
JOB_ID_MAX_LENGTH = 100

MIN_JOB_COUNT = 5
MAX_JOB_COUNT = 20
DEFAULT_JOB_COUNT = 10

_NON_KEY_CHARS = re.compile(r"[^a-z0-9-]")
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")
_DASH_RUN = re.compile(r"-+")
_NON_WORD_CHARS = re.compile(r"[^a-z0-9\s]")


def normalize_query(query: str, location: str) -> str:
    """Cache key for a (query, location) pair.

    Casing, punctuation and spaces are dropped, so
    "Software Engineer" and "  software-engineer " share one cache entry.
    """
    joined = f"{(query or '').lower().strip()}-{(location or '').lower().strip()}"
    key = _NON_KEY_CHARS.sub("", joined)
    key = _DASH_RUN.sub("-", key).strip("-")
    return key or DEFAULT_CACHE_KEY


def generate_job_id(title: str, company: str) -> str:
    base = f"{title}-{company}".lower()
    base = _NON_ALNUM_RUN.sub("-", base).strip("-")
    return base[:JOB_ID_MAX_LENGTH]


def extract_keywords(title: str) -> list[str]:
    """Lowercase title tokens of 2+ chars, used for keyword lookups."""
    cleaned = _NON_WORD_CHARS.sub("", (title or "").lower())
    return [w for w in cleaned.split() if len(w) >= 2]


def full_query(query: str, location: str) -> str:
    return f"{query} in {location}" if location else query


def clamp_job_count(job_count) -> int:
    try:
        n = int(job_count)
    except (TypeError, ValueError):
        n = DEFAULT_JOB_COUNT
    return min(max(n, MIN_JOB_COUNT), MAX_JOB_COUNT)
