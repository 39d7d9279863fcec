from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)

class UserOut(BaseModel):
    id: int
    email: EmailStr
    role: str
    plan: str
    ai_usage_count: int
    created_at: datetime

    model_config = {"from_attributes": True}

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

# Jobs
class JobRecord(BaseModel):
    id: str
    title: str
    company: str
    location: str
    description: str
    url: str
    salary: str | None = None
    posted: str | None = None
    source: str | None = None

    model_config = {"from_attributes": True}

class SearchResult(BaseModel):
    """One organic hit from the web search API."""
    title: str = ""
    link: str
    snippet: str = ""

class JobSearchRequest(BaseModel):
    query: str | None = None
    location: str | None = None
    job_count: int | None = Field(None, alias="jobCount")
    bypass_cache: bool = Field(False, alias="bypassCache")

    model_config = ConfigDict(populate_by_name=True)

class JobSearchResponse(BaseModel):
    jobs: list[JobRecord]
    cached: bool

class SmartSearchRequest(BaseModel):
    search_term: str | None = Field(None, alias="searchTerm")
    location: str | None = None

    model_config = ConfigDict(populate_by_name=True)

class SmartSearchResponse(BaseModel):
    jobs: list[JobRecord]
    source: str = "smart_search"

class DeleteJobRequest(BaseModel):
    job_id: str | None = Field(None, alias="jobId")

    model_config = ConfigDict(populate_by_name=True)

class DeleteJobResponse(BaseModel):
    success: bool
    job_id: str = Field(serialization_alias="jobId")
