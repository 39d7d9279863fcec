import requests

from app.jobs import google_search
from app.jobs.google_search import GoogleSearchClient


class _Resp:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


def test_search_appends_suffix_and_maps_items(monkeypatch):
    captured = {}

    def fake_get(url, params=None, timeout=None):
        captured.update(params)
        return _Resp(payload={"items": [
            {"title": "Backend Engineer", "link": "https://acme.example.com/jobs/1", "snippet": "Apply now"},
            {"title": "No link"},
        ]})

    monkeypatch.setattr(google_search.requests, "get", fake_get)
    client = GoogleSearchClient("key", "cx")
    results = client.search("Backend Engineer in Austin")

    assert captured["q"] == "Backend Engineer in Austin job openings"
    assert captured["num"] == 10
    assert captured["key"] == "key" and captured["cx"] == "cx"
    assert len(results) == 1
    assert results[0].link == "https://acme.example.com/jobs/1"
    assert results[0].snippet == "Apply now"


def test_search_returns_empty_on_http_error(monkeypatch):
    monkeypatch.setattr(google_search.requests, "get", lambda *a, **kw: _Resp(status_code=403))
    assert GoogleSearchClient("key", "cx").search("anything") == []


def test_search_returns_empty_on_transport_error(monkeypatch):
    def boom(*a, **kw):
        raise requests.ConnectionError("dns failure")

    monkeypatch.setattr(google_search.requests, "get", boom)
    assert GoogleSearchClient("key", "cx").search("anything") == []


def test_search_without_items(monkeypatch):
    monkeypatch.setattr(google_search.requests, "get", lambda *a, **kw: _Resp(payload={}))
    assert GoogleSearchClient("key", "cx").search("anything") == []


def test_is_configured():
    assert GoogleSearchClient("key", "cx").is_configured
    assert not GoogleSearchClient("key", None).is_configured
    assert not GoogleSearchClient(None, "cx").is_configured
