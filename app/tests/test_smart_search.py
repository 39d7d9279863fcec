import pytest

from app import crud, models
from app.errors import InternalError
from app.jobs.search_jobs import smart_search_jobs
from app.schemas import JobRecord


def _job(title, company, location, **extra):
    return JobRecord(
        id="ignored", title=title, company=company, location=location,
        description=f"{title} at {company}", url=f"https://{company.lower().replace(' ', '')}.example.com/jobs",
        **extra,
    )


@pytest.fixture()
def seeded(db_session):
    crud.upsert_indexed_jobs(db_session, [
        _job("Backend Engineer", "Acme Corp", "Austin, TX"),
        _job("Frontend Engineer", "Acme Corp", "New York, NY"),
        _job("Data Scientist", "Globex", "Austin, TX"),
        _job("Staff Engineer", "Initech", "Remote"),
    ], "seed-query")
    return db_session


def _ids(resp):
    return sorted(j.id for j in resp.jobs)


def test_empty_inputs_return_nothing(seeded):
    resp = smart_search_jobs(seeded, "", "  ")
    assert resp.jobs == []
    assert resp.source == "smart_search"
    assert smart_search_jobs(seeded, None, None).jobs == []


def test_company_prefix(seeded):
    assert _ids(smart_search_jobs(seeded, "ac", None)) == [
        "backend-engineer-acme-corp", "frontend-engineer-acme-corp",
    ]


def test_title_keyword(seeded):
    assert _ids(smart_search_jobs(seeded, "Engineer", None)) == [
        "backend-engineer-acme-corp", "frontend-engineer-acme-corp", "staff-engineer-initech",
    ]


def test_company_and_title_hits_are_deduplicated(db_session):
    # "data" matches both the company prefix and a title keyword
    crud.upsert_indexed_jobs(db_session, [_job("Data Analyst", "Datadog", "Boston")], "q")
    resp = smart_search_jobs(db_session, "data", None)
    assert [j.id for j in resp.jobs] == ["data-analyst-datadog"]


def test_location_only_is_prefix_match(seeded):
    assert _ids(smart_search_jobs(seeded, None, "austin")) == [
        "backend-engineer-acme-corp", "data-scientist-globex",
    ]
    assert smart_search_jobs(seeded, None, "tx").jobs == []


def test_term_and_location_only_narrow(seeded):
    resp = smart_search_jobs(seeded, "engineer", "Austin")
    assert _ids(resp) == ["backend-engineer-acme-corp"]
    # the Austin data scientist matches location but not the term
    assert all("austin" in j.location.lower() for j in resp.jobs)


def test_term_and_location_substring_check(seeded):
    assert _ids(smart_search_jobs(seeded, "engineer", "york")) == ["frontend-engineer-acme-corp"]


def test_lookup_failure_is_internal_error(seeded, monkeypatch):
    def broken(*a, **kw):
        raise RuntimeError("index offline")

    monkeypatch.setattr(crud, "find_jobs_by_company_prefix", broken)
    with pytest.raises(InternalError):
        smart_search_jobs(seeded, "acme", None)


def test_merge_upsert_keeps_unset_fields(db_session):
    crud.upsert_indexed_jobs(db_session, [_job("SRE", "Hooli", "Palo Alto", salary="$200k")], "first")
    crud.upsert_indexed_jobs(db_session, [_job("SRE", "Hooli", "Mountain View")], "second")
    db_session.expire_all()

    rows = db_session.query(models.CachedJob).all()
    assert len(rows) == 1
    row = rows[0]
    assert row.id == "sre-hooli"
    assert row.salary == "$200k"
    assert row.location == "Mountain View"
    assert row.location_lower == "mountain view"
    assert row.source_query == "second"
    assert [k.keyword for k in row.keywords] == ["sre"]


def test_smart_search_endpoint(client, db_session):
    crud.upsert_indexed_jobs(db_session, [_job("Backend Engineer", "Acme Corp", "Austin, TX")], "q")
    r = client.post("/api/jobs/smart-search", json={"searchTerm": "acme", "location": ""})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["source"] == "smart_search"
    assert [j["id"] for j in data["jobs"]] == ["backend-engineer-acme-corp"]

    assert client.post("/api/jobs/smart-search", json={}).json()["jobs"] == []
