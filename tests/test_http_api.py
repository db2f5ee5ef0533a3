"""Tests for the HTTP API — app factory and endpoint smoke tests.

Uses FastAPI's TestClient for synchronous request testing.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tcmkg import __version__
from tcmkg.api.app import create_app
from tcmkg.data.demo_graph import get_demo_payload


@pytest.fixture
def client():
    """Create a test client for the tcmkg API."""
    app = create_app(include_docs=True)
    return TestClient(app)


@pytest.fixture
def payload() -> dict:
    return get_demo_payload()


class TestAppFactory:
    """Verify the app factory assembles routes correctly."""

    def test_creates_fastapi_app(self):
        app = create_app()
        assert app.title == "tcmkg"

    def test_registers_routes(self):
        app = create_app()
        paths = {r.path for r in app.routes if hasattr(r, "path")}
        assert "/api/health" in paths
        assert "/api/algorithms" in paths
        assert "/api/cooccurrence" in paths
        assert "/api/analysis/{algorithm}" in paths

    def test_docs_enabled_by_default(self):
        app = create_app(include_docs=True)
        paths = {r.path for r in app.routes if hasattr(r, "path")}
        assert "/docs" in paths

    def test_docs_disabled(self):
        app = create_app(include_docs=False)
        paths = {r.path for r in app.routes if hasattr(r, "path")}
        assert "/docs" not in paths


class TestMetaEndpoints:
    def test_health_check(self, client):
        """GET /api/health should return ok."""
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": __version__}

    def test_list_algorithms(self, client):
        resp = client.get("/api/algorithms")
        assert resp.status_code == 200
        assert resp.json()["algorithms"] == [
            "hierarchical", "kmeans", "community", "association", "centrality",
        ]


class TestCooccurrenceEndpoint:
    def test_xy_example(self, client):
        resp = client.post("/api/cooccurrence", json={
            "entities": [
                {"type": "证候", "name": "X"},
                {"type": "证候", "name": "Y"},
                {"type": "症状", "name": "a"},
                {"type": "症状", "name": "b"},
                {"type": "症状", "name": "c"},
            ],
            "relations": [
                {"source": "X", "relation": "包含", "target": "a"},
                {"source": "X", "relation": "包含", "target": "b"},
                {"source": "Y", "relation": "包含", "target": "b"},
                {"source": "Y", "relation": "包含", "target": "c"},
            ],
            "containerType": "证候",
            "itemType": "症状",
        })
        assert resp.status_code == 200
        links = {(l["source"], l["target"]): l["weight"] for l in resp.json()["links"]}
        assert links == {("a", "b"): 1, ("b", "c"): 1}

    def test_with_metrics(self, client, payload):
        resp = client.post("/api/cooccurrence", json={
            **payload, "containerType": "证候", "itemType": "症状", "metrics": True,
        })
        data = resp.json()
        assert data["metadata"]["density"] == pytest.approx(1.0)
        assert all(n["metrics"]["kCore"] == 3 for n in data["nodes"])

    def test_missing_types(self, client, payload):
        resp = client.post("/api/cooccurrence", json=payload)
        assert resp.status_code == 422


class TestAnalysisEndpoint:
    def test_hierarchical(self, client, payload):
        resp = client.post("/api/analysis/hierarchical", json={
            **payload,
            "params": {"distanceType": "euclidean", "method": "complete", "k": 2},
            "containerType": "证候",
            "itemType": "症状",
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["tree"]["children"][0]["children"][0] == {
            "name": "胸闷", "isLeaf": True, "distance": 0.0,
        }
        assert data["assignments"] == {"胸闷": 0, "胸痛": 0, "心悸": 1, "气短": 1}
        assert data["nodes"][0] == {"id": "胸闷", "group": "症状", "clusters": {"hierarchical": 0}}

    def test_upper_case_algorithm(self, client, payload):
        resp = client.post("/api/analysis/CENTRALITY", json=payload)
        assert resp.status_code == 200
        assert set(resp.json()) == {"degree", "betweenness", "closeness"}


    def test_kmeans(self, client, payload):
        resp = client.post("/api/analysis/kmeans", json={
            **payload, "params": {"targetType": "中药", "k": 2},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["result"]["丹参"] == 0
        assert len(data["nodes"]) == 6
        assert data["nodes"][0]["clusters"] == {"kmeans": 0}

    def test_community(self, client, payload):
        resp = client.post("/api/analysis/community", json={
            **payload, "params": {"frontType": "方剂", "backType": "中药"},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["nodes"]) == 7
        assert all("community" in n["metrics"] for n in data["nodes"])

    def test_association(self, client, payload):
        resp = client.post("/api/analysis/association", json={
            **payload,
            "params": {"frontType": "症状", "backType": "证候", "minSupport": 0.2, "minConfidence": 0.5},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["rules"]) == 4
        assert data["links"][0]["association"]["isRule"] is True

    def test_centrality_top(self, client, payload):
        resp = client.post("/api/analysis/centrality", json={**payload, "top": 2})
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["degree"]) == 2
        assert data["degree"][0] == {"id": "气虚血瘀证", "val": 8}

    def test_unknown_algorithm(self, client, payload):
        resp = client.post("/api/analysis/pagerank", json=payload)
        assert resp.status_code == 404

    @pytest.mark.parametrize("algorithm,params", [
        ("kmeans", {"targetType": "中药", "k": 0}),
        ("kmeans", {"k": 2}),
        ("association", {"frontType": "症状", "backType": "方剂", "minSupport": 1.5}),
        ("association", {"frontType": "症状", "backType": "方剂", "minConfidence": -0.1}),
        ("hierarchical", {"distanceType": "cosine"}),
    ])
    def test_invalid_params(self, client, payload, algorithm, params):
        resp = client.post(f"/api/analysis/{algorithm}", json={**payload, "params": params})
        assert resp.status_code == 422

    def test_openapi_schema(self, client):
        resp = client.get("/openapi.json")
        assert resp.status_code == 200
        assert "/api/analysis/{algorithm}" in resp.json()["paths"]
