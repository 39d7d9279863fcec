from __future__ import annotations
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from . import models, security
from .config import settings
from .errors import NotFoundError, QuotaExceededError
from .jobs.normalize import extract_keywords, generate_job_id
from .schemas import JobRecord

logger = logging.getLogger(__name__)

# Monthly AI credits per paid plan; other plans fall back to the stored limit.
PLAN_CREDIT_LIMITS = {
    "pro_sprint": 100,
    "pro_monthly": 300,
}

HISTORY_SOURCE = "google"  # non-partner origin
HISTORY_LIST_LIMIT = 50

# Upper bound for prefix range scans: company_lower BETWEEN term AND term + PREFIX_SENTINEL
PREFIX_SENTINEL = "\uf8ff"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Users ---

def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == email).first()

def get_user(db: Session, user_id: int) -> models.User | None:
    return db.get(models.User, user_id)

def create_user(db: Session, email: str, password: str) -> models.User:
    hashed_pw = security.hash_password(password)
    user = models.User(email=email, hashed_password=hashed_pw)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


# --- AI credit gate ---

def credit_limit_for(user: models.User) -> int:
    if user.plan in PLAN_CREDIT_LIMITS:
        return PLAN_CREDIT_LIMITS[user.plan]
    if user.ai_usage_monthly_limit:
        return user.ai_usage_monthly_limit
    return settings.DEFAULT_AI_CREDIT_LIMIT

def consume_ai_credit(db: Session, user_id: int) -> int:
    """
    Check the caller's AI credit and count one use, atomically.

    The row is locked (SELECT ... FOR UPDATE) for the read-check-write so two
    concurrent searches cannot both pass the limit. Admins are never refused
    but are still counted. Returns the new usage count.
    """
    try:
        user = db.execute(
            select(models.User)
            .where(models.User.id == user_id)
            .with_for_update()
            # the request session may already hold this user; reload it under the lock
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        limit = credit_limit_for(user)
        logger.info(
            "User %s | role=%s admin=%s plan=%s | AI usage %s/%s",
            user_id, user.role, user.is_admin, user.plan, user.ai_usage_count, limit,
        )
        if not user.is_admin and user.ai_usage_count >= limit:
            raise QuotaExceededError("AI credit limit reached. Please upgrade your plan.")

        # relative increment, so the write itself cannot lose a concurrent use
        user.ai_usage_count = models.User.ai_usage_count + 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    return user.ai_usage_count


# --- Query-keyed cache ---

def get_cache_entry(db: Session, key: str) -> models.JobSearchCache | None:
    return db.get(models.JobSearchCache, key)

def touch_cache_entry(db: Session, key: str) -> None:
    """Refresh last_accessed_at only; expires_at is fixed at creation."""
    db.execute(
        models.JobSearchCache.__table__.update()
        .where(models.JobSearchCache.key == key)
        .values(last_accessed_at=_utcnow())
    )
    db.commit()

def save_cache_entry(db: Session, key: str, query: str, location: str, jobs: list[JobRecord]) -> models.JobSearchCache:
    """Create or replace the entry for ``key`` with a fresh TTL (last writer wins)."""
    now = _utcnow()
    entry = db.get(models.JobSearchCache, key)
    if entry is None:
        entry = models.JobSearchCache(key=key)
        db.add(entry)
    entry.query = query
    entry.location = location
    entry.jobs = [j.model_dump(exclude_none=True) for j in jobs]
    entry.created_at = now
    entry.last_accessed_at = now
    entry.expires_at = now + timedelta(days=settings.CACHE_TTL_DAYS)
    db.commit()
    return entry


# --- Smart index ---

def _merge(row, values: dict) -> None:
    """Shallow merge: set provided fields, leave fields passed as None untouched."""
    for field, value in values.items():
        if value is not None:
            setattr(row, field, value)

def upsert_indexed_jobs(db: Session, jobs: list[JobRecord], source_query: str) -> int:
    """Merge-upsert each job into the smart index, keyed by (title, company)."""
    now = _utcnow()
    for job in jobs:
        job_id = generate_job_id(job.title, job.company)
        keywords = extract_keywords(job.title)
        row = db.get(models.CachedJob, job_id)
        if row is None:
            row = models.CachedJob(id=job_id)
            db.add(row)
        _merge(row, {
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "description": job.description,
            "url": job.url,
            "salary": job.salary,
            "posted": job.posted,
            "source": job.source,
            "company_lower": job.company.lower(),
            "location_lower": job.location.lower(),
            "title_keywords": keywords,
            "source_query": source_query,
            "created_at": now,
            "last_accessed_at": now,
        })
        # keyword rows mirror title_keywords (set semantics); reuse rows that survive
        existing = {k.keyword: k for k in row.keywords}
        row.keywords = [existing.get(k) or models.CachedJobKeyword(keyword=k) for k in dict.fromkeys(keywords)]
        # autoflush is off; flush so a repeated id later in the batch merges into this row
        db.flush()
    db.commit()
    return len(jobs)

def find_jobs_by_company_prefix(db: Session, prefix: str, limit: int) -> list[models.CachedJob]:
    stmt = (
        select(models.CachedJob)
        .where(models.CachedJob.company_lower >= prefix)
        .where(models.CachedJob.company_lower <= prefix + PREFIX_SENTINEL)
        .order_by(models.CachedJob.company_lower)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())

def find_jobs_by_title_keyword(db: Session, keyword: str, limit: int) -> list[models.CachedJob]:
    stmt = (
        select(models.CachedJob)
        .join(models.CachedJobKeyword, models.CachedJobKeyword.job_id == models.CachedJob.id)
        .where(models.CachedJobKeyword.keyword == keyword)
        .order_by(models.CachedJob.id)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())

def find_jobs_by_location_prefix(db: Session, prefix: str, limit: int) -> list[models.CachedJob]:
    stmt = (
        select(models.CachedJob)
        .where(models.CachedJob.location_lower >= prefix)
        .where(models.CachedJob.location_lower <= prefix + PREFIX_SENTINEL)
        .order_by(models.CachedJob.location_lower)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())


# --- Per-user history ---

def upsert_history_jobs(db: Session, user_id: int, jobs: list[JobRecord], search_query: str) -> int:
    now = _utcnow()
    for job in jobs:
        row = db.get(models.JobSearchHistory, (user_id, job.id))
        if row is None:
            row = models.JobSearchHistory(user_id=user_id, job_id=job.id)
            db.add(row)
        _merge(row, {
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "description": job.description,
            "url": job.url,
            "salary": job.salary,
            "posted": job.posted,
            "source": HISTORY_SOURCE,
            "search_query": search_query,
            "created_at": now,
        })
        db.flush()
    db.commit()
    return len(jobs)

def list_history_jobs(db: Session, user_id: int, limit: int = HISTORY_LIST_LIMIT) -> list[models.JobSearchHistory]:
    stmt = (
        select(models.JobSearchHistory)
        .where(models.JobSearchHistory.user_id == user_id)
        .order_by(models.JobSearchHistory.created_at.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars())

def delete_history_job(db: Session, user_id: int, job_id: str) -> bool:
    """Delete one history row. Returns False when there was nothing to delete."""
    deleted = db.execute(
        delete(models.JobSearchHistory)
        .where(models.JobSearchHistory.user_id == user_id)
        .where(models.JobSearchHistory.job_id == job_id)
    ).rowcount or 0
    db.commit()
    return deleted > 0
