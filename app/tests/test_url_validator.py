import threading
import time
from urllib.parse import quote

import requests

from app.jobs import url_validator
from app.jobs.url_validator import company_fallback_url, probe_url, validate_and_fix_urls
from app.schemas import JobRecord

from app.tests.fakes import FakeProbe


def _job(url, title="Backend Engineer", company="Acme Corp"):
    return JobRecord(
        id="x", title=title, company=company, location="Remote",
        description="d", url=url,
    )


class _Resp:
    def __init__(self, status_code):
        self.status_code = status_code


def test_dead_url_gets_company_title_fallback(monkeypatch):
    monkeypatch.setattr(url_validator.requests, "head", lambda *a, **kw: _Resp(500))
    out = validate_and_fix_urls([_job("https://acme.example.com/jobs/1")])
    expected = "https://www.google.com/search?q=" + quote("Acme Corp careers Backend Engineer apply", safe="")
    assert out[0].url == expected
    assert quote("Acme Corp", safe="") in out[0].url
    assert quote("Backend Engineer", safe="") in out[0].url


def test_live_url_is_kept(monkeypatch):
    seen = {}

    def fake_head(url, **kw):
        seen.update(kw)
        return _Resp(200)

    monkeypatch.setattr(url_validator.requests, "head", fake_head)
    out = validate_and_fix_urls([_job("https://acme.example.com/jobs/1")])
    assert out[0].url == "https://acme.example.com/jobs/1"
    assert seen["allow_redirects"] is True
    assert seen["timeout"] == 3.0


def test_probe_errors_and_timeouts_are_failures(monkeypatch):
    def boom(*a, **kw):
        raise requests.Timeout("slow")

    monkeypatch.setattr(url_validator.requests, "head", boom)
    assert probe_url("https://acme.example.com/jobs/1") is False


def test_unusable_urls_are_not_probed():
    probe = FakeProbe()
    jobs = [_job(""), _job("http://x"), _job("https://acme.example.com/[job-id]")]
    out = validate_and_fix_urls(jobs, probe=probe)
    assert probe.urls == []
    assert all(j.url == company_fallback_url("Acme Corp", "Backend Engineer") for j in out)


def test_mixed_batch_keeps_order_and_never_raises():
    def probe(url):
        if "raise" in url:
            raise RuntimeError("connection reset")
        return "dead" not in url

    jobs = [
        _job("https://a.example.com/live", title="A"),
        _job("https://b.example.com/dead", title="B"),
        _job("https://c.example.com/raise", title="C"),
    ]
    out = validate_and_fix_urls(jobs, probe=probe)
    assert [j.title for j in out] == ["A", "B", "C"]
    assert out[0].url == "https://a.example.com/live"
    assert out[1].url == company_fallback_url("Acme Corp", "B")
    assert out[2].url == company_fallback_url("Acme Corp", "C")
    # inputs are not mutated
    assert jobs[1].url == "https://b.example.com/dead"


def test_empty_batch():
    assert validate_and_fix_urls([]) == []


def test_slow_probe_is_cut_off_at_the_deadline():
    release = threading.Event()

    def probe(url):
        if "slow" in url:
            release.wait(10)
        return True

    jobs = [_job("https://a.example.com/fast", title="A"), _job("https://b.example.com/slow", title="B")]
    started = time.monotonic()
    try:
        out = validate_and_fix_urls(jobs, probe=probe, deadline_seconds=0.2)
    finally:
        release.set()
    assert time.monotonic() - started < 2
    assert out[0].url == "https://a.example.com/fast"
    assert out[1].url == company_fallback_url("Acme Corp", "B")
