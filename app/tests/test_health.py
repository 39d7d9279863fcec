from app.config import settings


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["database"] == "ok"


def test_debug_cache_key_hidden_by_default(client, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", False)
    assert client.get("/debug/cache-key", params={"q": "SRE"}).status_code == 404


def test_debug_cache_key(client, monkeypatch):
    monkeypatch.setattr(settings, "DEBUG", True)
    r = client.get("/debug/cache-key", params={"q": "Software Engineer", "loc": "NYC"})
    assert r.json() == {"key": "softwareengineer-nyc", "cached": False, "expiresAt": None}
