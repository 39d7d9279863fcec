# app/config.py

from __future__ import annotations
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    # --- Core ---
    SECRET_KEY: str = Field("change-me", description="JWT signing key")
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(60, ge=5, le=60 * 24)
    DEBUG: bool = True  # set False in prod
    LOG_LEVEL: str = "INFO"

    # --- Database ---
    DATABASE_URL: str = Field("sqlite:///./jobcache.db")
    # Alembic reads DATABASE_URL from env; kept separate on purpose.

    # --- Language model (extraction) ---
    OPENAI_API_KEY: Optional[str] = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_TEMPERATURE: float = Field(0.2, ge=0.0, le=2.0)

    # --- Google Custom Search ---
    GOOGLE_SEARCH_API_KEY: Optional[str] = None
    GOOGLE_SEARCH_CX: Optional[str] = None
    GOOGLE_SEARCH_URL: str = "https://www.googleapis.com/customsearch/v1"
    SEARCH_RESULT_COUNT: int = Field(10, ge=1, le=10)  # API caps num at 10

    # --- Cache / index ---
    CACHE_TTL_DAYS: int = Field(14, ge=1)
    SMART_SEARCH_LIMIT: int = Field(30, ge=1)

    # --- Timeouts (seconds) ---
    URL_PROBE_TIMEOUT_SECONDS: float = 3.0
    REQUEST_TIMEOUT_SECONDS: float = 60.0

    # --- AI credits ---
    DEFAULT_AI_CREDIT_LIMIT: int = 10

    # --- CORS for the public search endpoint ---
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
