"""
Job search orchestration.

``JobSearchPipeline.search`` runs one search request end to end:

    credit gate -> cache probe -> web search -> extraction -> URL validation
    -> {cache, smart index, user history} -> response

``smart_search_jobs`` answers free-text queries from the smart index only and
never touches the paid services.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from app import crud, models
from app.config import settings
from app.errors import (
    InternalError,
    InvalidArgumentError,
    JobSearchError,
    PreconditionError,
    UnauthenticatedError,
    UpstreamError,
)
from app.jobs.extraction import extract_jobs
from app.jobs.normalize import clamp_job_count, full_query, normalize_query
from app.jobs.url_validator import probe_url, validate_and_fix_urls
from app.schemas import (
    DeleteJobResponse,
    JobRecord,
    JobSearchRequest,
    JobSearchResponse,
    SmartSearchResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_QUERY = "Software Engineer"


# ---------- Detached writes ----------

def _run_detached(session_factory: sessionmaker, label: str, fn: Callable, *args) -> None:
    """Run ``fn(db, *args)`` in its own session; failures are logged and dropped."""
    db = session_factory()
    try:
        fn(db, *args)
    except Exception as e:
        db.rollback()
        logger.warning("Failed to %s: %s", label, e)
    finally:
        db.close()


def refresh_cache_access(session_factory: sessionmaker, key: str) -> None:
    _run_detached(session_factory, f"update lastAccessedAt for {key!r}", crud.touch_cache_entry, key)


def write_cache_entry(session_factory: sessionmaker, key: str, query: str, location: str, jobs: list[JobRecord]) -> None:
    _run_detached(session_factory, f"save cache entry {key!r}", crud.save_cache_entry, key, query, location, jobs)


def index_jobs(session_factory: sessionmaker, jobs: list[JobRecord], key: str) -> None:
    _run_detached(session_factory, "index jobs for smart search", crud.upsert_indexed_jobs, jobs, key)


def record_history(session_factory: sessionmaker, user_id: int, jobs: list[JobRecord], search_query: str) -> None:
    _run_detached(
        session_factory, f"save job history for user {user_id}",
        crud.upsert_history_jobs, user_id, jobs, search_query,
    )


def run_concurrently(*writes: tuple) -> None:
    """Start every ``(fn, *args)`` write on its own thread; none waits on another."""
    with ThreadPoolExecutor(max_workers=len(writes)) as pool:
        for fn, *args in writes:
            pool.submit(fn, *args)


# ---------- Search endpoint ----------

class JobSearchPipeline:
    def __init__(
        self,
        db: Session,
        session_factory: sessionmaker,
        search_client,
        completion_client,
        probe: Callable[[str], bool] = probe_url,
        background: BackgroundTasks | None = None,
    ):
        self.db = db
        self.session_factory = session_factory
        self.search_client = search_client
        self.completion_client = completion_client
        self.probe = probe
        self.background = background

    def _detach(self, fn: Callable, *args) -> None:
        # Without a response cycle to hang off, run now; fn never raises.
        if self.background is not None:
            self.background.add_task(fn, *args)
        else:
            fn(*args)

    def _check_credit(self, user: models.User | None) -> None:
        if user is None:
            raise UnauthenticatedError("User must be authenticated")
        try:
            crud.consume_ai_credit(self.db, user.id)
        except JobSearchError:
            raise
        except Exception as e:
            logger.error("Error checking/deducting AI credit for user %s: %s", user.id, e)
            raise InternalError("Failed to process AI credit") from e

    def _lookup_cache(self, key: str) -> list[JobRecord] | None:
        try:
            entry = crud.get_cache_entry(self.db, key)
            if entry is None:
                return None
            jobs = [JobRecord.model_validate(j) for j in entry.jobs]
        except Exception as e:
            logger.warning("Cache lookup error for %r, proceeding with API call: %s", key, e)
            return None
        self._detach(refresh_cache_access, self.session_factory, key)
        return jobs

    def _fetch_fresh(self, query: str, location: str) -> list[JobRecord]:
        if not self.search_client.is_configured:
            logger.error("Google Search API key or CX missing, cannot proceed")
            raise PreconditionError("Google Search API is not configured. Please contact support.")

        fq = full_query(query, location)
        try:
            results = self.search_client.search(fq)
        except Exception as e:
            logger.error("Google search failed: %s", e)
            raise UpstreamError("Failed to fetch job search results. Please try again.") from e
        if not results:
            logger.info("No search results for %r", fq)
            return []

        try:
            jobs = extract_jobs(query, location, results, self.completion_client)
        except UpstreamError:
            raise
        except Exception as e:
            logger.error("Extraction failed for %r: %s", fq, e)
            raise UpstreamError(f"Language model error: {e}") from e

        return validate_and_fix_urls(jobs, probe=self.probe)

    def search(self, req: JobSearchRequest, user: models.User | None = None, enforce_quota: bool = True) -> JobSearchResponse:
        if not self.completion_client.is_configured:
            raise PreconditionError("Missing API Key.")

        query = req.query or DEFAULT_QUERY
        location = req.location or ""
        job_count = clamp_job_count(req.job_count)

        # credit is taken before anything that costs money
        if enforce_quota:
            self._check_credit(user)

        key = normalize_query(query, location)
        logger.info("Searching for %r (key=%s)", full_query(query, location), key)

        if req.bypass_cache:
            logger.info("Cache BYPASSED for %r", key)
        else:
            cached = self._lookup_cache(key)
            if cached is not None:
                logger.info("Cache HIT for %r, returning %d jobs", key, len(cached))
                return JobSearchResponse(jobs=cached[:job_count], cached=True)
            logger.info("Cache MISS for %r", key)

        jobs = self._fetch_fresh(query, location)

        if jobs:
            writes = [
                (write_cache_entry, self.session_factory, key, query, location, jobs),
                (index_jobs, self.session_factory, jobs, key),
            ]
            if user is not None:
                writes.append((
                    record_history, self.session_factory, user.id,
                    jobs[:job_count], full_query(query, location),
                ))
            self._detach(run_concurrently, *writes)

        logger.info("Returning %d validated jobs for %r", min(len(jobs), job_count), key)
        return JobSearchResponse(jobs=jobs[:job_count], cached=False)


# ---------- Smart search ----------

def _to_record(row: models.CachedJob) -> JobRecord:
    return JobRecord(
        id=row.id,
        title=row.title,
        company=row.company,
        location=row.location,
        description=row.description,
        url=row.url,
        salary=row.salary,
        posted=row.posted,
    )


def smart_search_jobs(
    db: Session,
    search_term: str | None,
    location: str | None,
    limit: int = settings.SMART_SEARCH_LIMIT,
) -> SmartSearchResponse:
    """
    Search the smart index by company prefix, title keyword and location prefix.

    With a term, location narrows the term matches and is then re-checked as a
    substring of the job's location. Without a term, location matches are the
    result.
    """
    term = (search_term or "").lower().strip()
    loc = (location or "").lower().strip()
    if not term and not loc:
        logger.info("Smart search called without term or location")
        return SmartSearchResponse(jobs=[])

    found: dict[str, JobRecord] = {}
    try:
        if term:
            company_hits = crud.find_jobs_by_company_prefix(db, term, limit)
            for row in company_hits:
                found.setdefault(row.id, _to_record(row))
            title_hits = crud.find_jobs_by_title_keyword(db, term, limit)
            for row in title_hits:
                found.setdefault(row.id, _to_record(row))
            logger.info("Smart search term %r: %d company, %d title hits", term, len(company_hits), len(title_hits))

        if loc:
            location_hits = crud.find_jobs_by_location_prefix(db, loc, limit)
            # with a term, location may only narrow; the substring pass below does the cut
            if not term:
                for row in location_hits:
                    found.setdefault(row.id, _to_record(row))
            logger.info("Smart search location %r: %d hits", loc, len(location_hits))
    except Exception as e:
        logger.error("Smart search error: %s", e)
        raise InternalError(f"Smart search error: {e}") from e

    jobs = list(found.values())
    if term and loc:
        jobs = [j for j in jobs if loc in j.location.lower()]
    logger.info("Smart search returning %d unique jobs", len(jobs))
    return SmartSearchResponse(jobs=jobs)


# ---------- History ----------

def delete_user_job(db: Session, user: models.User | None, job_id: str | None) -> DeleteJobResponse:
    if user is None:
        raise UnauthenticatedError("User must be authenticated")
    if not job_id:
        raise InvalidArgumentError("jobId is required")
    try:
        crud.delete_history_job(db, user.id, job_id)
    except Exception as e:
        logger.error("Error deleting job %s for user %s: %s", job_id, user.id, e)
        raise InternalError(f"Failed to delete job: {e}") from e
    logger.info("Deleted job %s from user %s history", job_id, user.id)
    return DeleteJobResponse(success=True, job_id=job_id)


def list_user_job_history(db: Session, user: models.User) -> list[JobRecord]:
    rows = crud.list_history_jobs(db, user.id)
    return [
        JobRecord(
            id=r.job_id,
            title=r.title,
            company=r.company,
            location=r.location,
            description=r.description,
            url=r.url,
            salary=r.salary,
            posted=r.posted,
            source=r.source,
        )
        for r in rows
    ]
