"""
Integration tests for the FastAPI layer and the rebuild CLI.
"""
import json
import time

import numpy as np
import pytest
from fastapi.testclient import TestClient

from agent_core.config import Settings
from agent_core.container import build_container
from api.main import create_app
from recommender import rebuild_index
from tests.conftest import FnProvider, VocabProvider


@pytest.fixture
def settings(tmp_path, sample_products):
    catalog_path = tmp_path / "catalog.json"
    catalog_path.write_text(json.dumps([p.model_dump() for p in sample_products]), encoding="utf-8")
    return Settings(
        catalog_path=catalog_path,
        cache_path=tmp_path / "cache" / "product_embeddings.json",
        log_dir=tmp_path / "logs",
        embed_delay_seconds=0,
        build_on_startup=False,
    )


@pytest.fixture
def container(settings):
    return build_container(settings, provider=VocabProvider())


@pytest.fixture
def client(container):
    with TestClient(create_app(container)) as c:
        yield c


@pytest.mark.integration
class TestRetrievalApi:

    def test_root_and_health(self, client):
        assert "/recommend" in client.get("/").json()["endpoints"]
        health = client.get("/health").json()
        assert health["status"] == "degraded"
        assert health["index_ready"] is False

    def test_config(self, client):
        cfg = client.get("/config").json()
        assert cfg["min_similarity"] == pytest.approx(0.30)
        assert cfg["build_on_startup"] is False

    def test_recommend_before_build_is_keyword_only(self, client):
        body = client.post("/recommend", json={"query": "phone"}).json()
        assert body["strategy"] == "keyword"
        assert body["products"]

    def test_rebuild_then_hybrid(self, client):
        report = client.post("/rebuild_embeddings", params={"force": True}).json()
        assert report["succeeded"] == 4
        assert report["forced"] is True

        stats = client.get("/index/stats").json()
        assert stats["ready"] is True
        assert stats["total_products"] == 4

        body = client.post("/recommend", json={"query": "phone camera", "exclude_id": "p2"}).json()
        assert body["strategy"] == "hybrid"
        assert [p["id"] for p in body["products"]] == ["p1", "p4"]

    def test_recommend_validation(self, client):
        assert client.post("/recommend", json={"query": "  "}).status_code == 400
        assert client.post("/recommend", json={"query": "phone", "limit": 0}).status_code == 422

    def test_keywords(self, client):
        body = client.post("/keywords", json={"query": "cheap samsung phone"}).json()
        assert body["keywords"] == ["cheap", "samsung", "phone"]
        assert body["count"] == 3
        assert client.post("/keywords", json={"query": ""}).status_code == 400

    def test_incremental_product_endpoints(self, client):
        client.post("/rebuild_embeddings")
        product = {"id": "p5", "name": "Budget Phone", "brand": "Nokia", "price": 99, "rating": 3.5}

        assert client.post("/index/products", json=product).json()["indexed"] is True
        assert client.get("/index/stats").json()["total_products"] == 5
        assert client.delete("/index/products/p5").json()["removed"] is True
        assert client.delete("/index/products/p5").json()["removed"] is False

    def test_diagnostics_and_analytics(self, client):
        client.post("/rebuild_embeddings")
        diag = client.get("/index/diagnostics").json()
        assert diag["coverage"] == 1.0
        assert diag["needs_rebuild"] is False

        analytics = client.get("/analytics").json()
        assert analytics["total_products"] == 4
        assert analytics["total_categories"] == 3


def test_dimension_mismatch_maps_to_conflict(settings):
    provider = FnProvider(lambda t: np.ones(9) if "Odd" in t else np.ones(4))
    container = build_container(settings, provider=provider)
    with TestClient(create_app(container)) as client:
        client.post("/rebuild_embeddings")
        resp = client.post("/index/products", json={"id": "x", "name": "Odd Item", "price": 1})
    assert resp.status_code == 409


def test_background_build_on_startup(settings):
    container = build_container(settings.model_copy(update={"build_on_startup": True}), provider=VocabProvider())
    with TestClient(create_app(container)) as client:
        for _ in range(100):
            if client.get("/index/stats").json()["ready"]:
                break
            time.sleep(0.02)
        assert client.get("/health").json()["status"] == "healthy"


class TestRebuildCli:

    def test_rebuild_and_verify(self, container, capsys):
        assert rebuild_index.main(["--verify"], container=container) == 0
        out = capsys.readouterr().out
        assert "4 indexed from provider" in out
        assert "Coverage: 100.0%" in out
        assert container.index.stats()["cache_exists"] is True

    def test_second_run_uses_cache(self, settings, capsys):
        rebuild_index.main([], container=build_container(settings, provider=VocabProvider()))
        assert rebuild_index.main([], container=build_container(settings, provider=VocabProvider())) == 0
        assert "indexed from cache" in capsys.readouterr().out

    def test_total_failure_exit_code(self, settings):
        container = build_container(settings, provider=VocabProvider(fail_on={"Price:"}))
        assert rebuild_index.main(["--force"], container=container) == 1
