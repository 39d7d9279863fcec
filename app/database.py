from __future__ import annotations
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.engine.url import make_url

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./jobcache.db")

connect_args = {}
try:
    url = make_url(DATABASE_URL)
    if url.drivername.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
except Exception:
    if DATABASE_URL.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

class Base(DeclarativeBase):
    pass

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_factory() -> sessionmaker:
    """Session factory for work that outlives the request (background writes)."""
    return SessionLocal
