# app/models.py
from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy import String, Text, DateTime, Integer, ForeignKey, JSON, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    # RFC 5321 cap is 320 chars; unique + indexed for login lookups
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(32), default="user", nullable=False)
    roles: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    plan: Mapped[str] = mapped_column(String(32), default="free", nullable=False)

    # Billing lives elsewhere; only the counters the credit gate reads are kept here.
    ai_usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ai_usage_monthly_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    history: Mapped[list["JobSearchHistory"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin" or "admin" in (self.roles or [])


# --- Query-keyed cache ---

class JobSearchCache(Base):
    __tablename__ = "job_search_cache"

    # normalize_query(query, location)
    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    query: Mapped[str] = mapped_column(String(512), nullable=False)
    location: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    jobs: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    # set once at creation; hits never extend it
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# --- Per-job smart index ---

class CachedJob(Base):
    __tablename__ = "cached_jobs"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)  # generate_job_id(title, company)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    company: Mapped[str] = mapped_column(String(512), nullable=False)
    location: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    salary: Mapped[str | None] = mapped_column(String(255), nullable=True)
    posted: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str | None] = mapped_column(String(64), nullable=True)

    company_lower: Mapped[str] = mapped_column(String(512), index=True, nullable=False)
    location_lower: Mapped[str] = mapped_column(String(512), index=True, nullable=False)
    title_keywords: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    source_query: Mapped[str] = mapped_column(String(512), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    last_accessed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    keywords: Mapped[list["CachedJobKeyword"]] = relationship(
        back_populates="job", cascade="all, delete-orphan"
    )


class CachedJobKeyword(Base):
    """One row per title token; stands in for an array-contains query."""
    __tablename__ = "cached_job_keywords"

    job_id: Mapped[str] = mapped_column(ForeignKey("cached_jobs.id", ondelete="CASCADE"), primary_key=True)
    keyword: Mapped[str] = mapped_column(String(255), primary_key=True)

    job: Mapped[CachedJob] = relationship(back_populates="keywords")

Index("ix_cached_job_keywords_keyword", CachedJobKeyword.keyword)


# --- Per-user history ---

class JobSearchHistory(Base):
    __tablename__ = "job_search_history"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    company: Mapped[str] = mapped_column(String(512), nullable=False)
    location: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    salary: Mapped[str | None] = mapped_column(String(255), nullable=True)
    posted: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str] = mapped_column(String(64), nullable=False, default="google")
    search_query: Mapped[str] = mapped_column(String(1024), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user: Mapped[User] = relationship(back_populates="history")

Index("ix_job_search_history_user_created", JobSearchHistory.user_id, JobSearchHistory.created_at)
