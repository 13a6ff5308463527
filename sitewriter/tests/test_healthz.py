import pytest
from sqlalchemy.exc import OperationalError

import sitewriter.api.health as health_api
from sitewriter.core import database
from sitewriter.core.tracing import get_exported_spans, reset_exported_spans, setup_tracing


def test_healthz_always_ok(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_ok_with_tables(client):
    resp = client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json().get("status") == "ok"


def test_readyz_reports_missing_tables(client):
    database.user_settings.drop(bind=database.get_engine())
    resp = client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "missing tables: user_settings"


def test_readyz_handles_db_down(client, monkeypatch):
    def boom():
        raise OperationalError("SELECT 1", {}, Exception("db down"))

    monkeypatch.setattr(health_api, "missing_tables", boom)

    resp = client.get("/readyz")
    body = resp.json()
    assert resp.status_code == 503
    assert body.get("status") == "error"
    assert "database" in body.get("detail", "")


def test_readyz_requires_github_config(client, monkeypatch):
    monkeypatch.setattr(health_api.settings, "GITHUB_REPO", None)
    resp = client.get("/readyz")
    assert resp.status_code == 503


def test_metrics_exposes_request_and_publish_counters(client):
    client.get("/healthz")
    client.post("/api/publish/note", json={"content": "hi"})

    text = client.get("/metrics").text

    assert 'http_requests_total{method="GET",path="/healthz",status="200"} 1.0' in text
    assert 'publish_attempts_total{kind="note",state="succeeded"} 1.0' in text
    assert 'remote_requests_total{op="dispatch",outcome="ok"} 1.0' in text


@pytest.fixture
def memory_tracing():
    setup_tracing(enabled=True, exporter_name="memory")
    reset_exported_spans()
    yield
    setup_tracing(enabled=False)


def test_publish_is_traced(client, memory_tracing):
    client.post("/api/publish/note", json={"content": "traced"})
    names = {span.name for span in get_exported_spans()}
    assert {"http.request", "publish.note", "github.dispatch"} <= names
