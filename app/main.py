# app/main.py
import logging

from fastapi import BackgroundTasks, Body, Depends, FastAPI, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from . import crud, models
from .auth import authenticate_user, get_current_user, get_optional_user
from .config import settings
from .database import get_db, get_session_factory
from .errors import InvalidArgumentError, JobSearchError, job_search_error_handler
from .jobs.google_search import GoogleSearchClient, get_search_client
from .jobs.llm import CompletionClient, get_completion_client
from .jobs.normalize import normalize_query
from .jobs.search_jobs import JobSearchPipeline, delete_user_job, list_user_job_history, smart_search_jobs
from .jobs.url_validator import get_url_probe
from .schemas import (
    DeleteJobRequest,
    DeleteJobResponse,
    JobRecord,
    JobSearchRequest,
    JobSearchResponse,
    SmartSearchRequest,
    SmartSearchResponse,
    Token,
    UserCreate,
    UserOut,
)
from .token import create_access_token

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Job search cache")
app.add_exception_handler(JobSearchError, job_search_error_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Initialize database on startup
@app.on_event("startup")
async def startup_event():
    from .database import engine, Base
    # Create tables if they don't exist
    Base.metadata.create_all(bind=engine)


def get_pipeline(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory: sessionmaker = Depends(get_session_factory),
    search_client: GoogleSearchClient = Depends(get_search_client),
    completion_client: CompletionClient = Depends(get_completion_client),
    probe=Depends(get_url_probe),
) -> JobSearchPipeline:
    return JobSearchPipeline(
        db,
        session_factory,
        search_client,
        completion_client,
        probe=probe,
        background=background_tasks,
    )


@app.get("/health", tags=["monitoring"])
def health_check(db: Session = Depends(get_db)):
    """
    Checks if the application is healthy, including the database connection.
    """
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ok", "database": "ok"}
    except Exception:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Database connection error"
        )

@app.get("/debug/cache-key", tags=["debug"])
def debug_cache_key(
    q: str = Query("Software Engineer"),
    loc: str = Query(""),
    db: Session = Depends(get_db),
):
    if not settings.DEBUG:
        raise HTTPException(status_code=404, detail="Not found")
    key = normalize_query(q, loc)
    entry = crud.get_cache_entry(db, key)
    return {
        "key": key,
        "cached": entry is not None,
        "expiresAt": entry.expires_at.isoformat() if entry else None,
    }

# Auth endpoints
@app.post("/api/register", response_model=UserOut, status_code=status.HTTP_201_CREATED, tags=["auth"])
def register_api(payload: UserCreate, db: Session = Depends(get_db)):
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")
    return crud.create_user(db, payload.email, payload.password)

@app.post("/api/login", response_model=Token, tags=["auth"])
def login_api(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(db, form.username, form.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    token = create_access_token(subject=user.email)
    return {"access_token": token, "token_type": "bearer"}

@app.get("/api/me", response_model=UserOut, tags=["auth"])
def me(current_user: models.User = Depends(get_current_user)):
    return current_user

# Jobs endpoints
@app.post("/api/jobs/search", response_model=JobSearchResponse, tags=["jobs"])
def search_jobs_metered(
    payload: JobSearchRequest | None = None,
    pipeline: JobSearchPipeline = Depends(get_pipeline),
    user: models.User | None = Depends(get_optional_user),
):
    """Credit-gated search for signed-in users; results also land in their history."""
    return pipeline.search(payload or JobSearchRequest(), user=user, enforce_quota=True)

@app.api_route("/api/jobs/search/public", methods=["GET", "POST"], response_model=JobSearchResponse, tags=["jobs"])
def search_jobs_public(
    q: str | None = Query(None),
    loc: str | None = Query(None),
    job_count: str | None = Query(None, alias="jobCount"),
    bypass_cache: str | None = Query(None, alias="bypassCache"),
    body: dict | None = Body(None),
    pipeline: JobSearchPipeline = Depends(get_pipeline),
):
    """Unmetered search. Fields come from the query string, then ``body.data``, then ``body``."""
    body = body or {}
    fields = {k: v for k, v in body.items() if k != "data"}
    if isinstance(body.get("data"), dict):
        fields.update(body["data"])
    from_query = {"query": q, "location": loc, "jobCount": job_count, "bypassCache": bypass_cache}
    fields.update({k: v for k, v in from_query.items() if v is not None})
    try:
        # pydantic parses "false" / "0" / "true" the same from query strings and JSON
        req = JobSearchRequest.model_validate(fields)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid search request: {e.errors()[0]['msg']}") from e
    return pipeline.search(req, user=None, enforce_quota=False)

@app.post("/api/jobs/smart-search", response_model=SmartSearchResponse, tags=["jobs"])
def smart_search(payload: SmartSearchRequest | None = None, db: Session = Depends(get_db)):
    payload = payload or SmartSearchRequest()
    return smart_search_jobs(db, payload.search_term, payload.location)

@app.get("/api/jobs/history", response_model=list[JobRecord], tags=["jobs"])
def job_history(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    return list_user_job_history(db, current_user)

@app.post("/api/jobs/history/delete", response_model=DeleteJobResponse, tags=["jobs"])
def delete_history_job(
    payload: DeleteJobRequest | None = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    return delete_user_job(db, current_user, payload.job_id if payload else None)
