import pytest
from fastapi.testclient import TestClient

from config.settings import Settings
from conftest import STAGE_REPLIES, FakeFetcher, FakeLLM
from pricing.estimator import ComplexityEstimator
from server.api import app, get_estimator, get_pipeline, get_store
from storage.documents import InMemoryDocumentStore
from synthesis.pipeline import DocumentationPipeline

SETTINGS = Settings(request_timeout=1.0, crawl_delay=0.0)


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def client(store):
    replies = {"items": list(STAGE_REPLIES)}

    def estimator_override():
        return ComplexityEstimator(FakeFetcher(), SETTINGS)

    def pipeline_override():
        return DocumentationPipeline(
            fetcher=FakeFetcher(),
            client=FakeLLM(replies["items"]),
            store=store,
            settings=SETTINGS,
        )

    app.dependency_overrides[get_estimator] = estimator_override
    app.dependency_overrides[get_pipeline] = pipeline_override
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app), replies
    app.dependency_overrides.clear()


def test_health(client):
    http, _ = client
    response = http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_analyze_requires_url(client):
    http, _ = client
    assert http.post("/analyze-complexity", json={}).status_code == 400


def test_analyze_rejects_private_targets(client):
    http, _ = client
    response = http.post("/analyze-complexity", json={"url": "http://10.0.0.5/admin"})
    assert response.status_code == 400


def test_analyze_returns_quote(client):
    http, _ = client
    response = http.post("/analyze-complexity", json={"url": "https://down.test"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["quote"]["is_free"] is True
    assert body["quote"]["estimated_total"] == 0
    assert body["analysis"]["estimated_pages"] == 10
    assert "timestamp" in body


def test_generate_stores_document(client, store):
    http, _ = client
    response = http.post("/generate", json={"url": "https://down.test", "user_id": "u-9"})

    assert response.status_code == 200
    body = response.json()
    assert body["document_id"] == 1
    assert body["title"] == "Acme Docs"
    assert body["research_stats"]["pages_analyzed"] == 0
    assert store.documents[0]["document"].user_id == "u-9"


def test_generate_requires_url(client):
    http, _ = client
    assert http.post("/generate", json={"user_id": "u"}).status_code == 400


def test_generate_blocks_localhost(client, store):
    http, _ = client
    response = http.post("/generate", json={"url": "http://localhost:8080"})
    assert response.status_code == 400
    assert store.documents == []


def test_generate_reports_failed_stage(client, store):
    http, replies = client
    replies["items"] = [STAGE_REPLIES[0], "bad", "bad", "bad"]

    response = http.post("/generate", json={"url": "https://down.test"})

    assert response.status_code == 502
    assert response.json()["detail"]["stage"] == "writing"
    assert store.documents == []


def test_metrics_endpoint(client):
    http, _ = client
    http.get("/health")
    response = http.get("/metrics")
    assert response.status_code == 200
    assert "sitescribe_http_requests_total" in response.text
