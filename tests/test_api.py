"""Tests for the HTTP service layer."""

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.record_source import RecordSource
from config.settings import AnalysisConfig, AppConfig, CacheConfig, Config


def _config(**analysis):
    return Config(analysis=AnalysisConfig(**analysis), cache=CacheConfig(), app=AppConfig())


@pytest.fixture
def client():
    return TestClient(create_app(_config()))


def _points(two_clusters):
    return [{"id": p.id, "lat": p.lat, "lng": p.lng, "value": p.value} for p in two_clusters]


def _spatial_points(clustered_values):
    return [{"id": p.id, "lat": p.lat, "lng": p.lng, "value": p.value} for p in clustered_values]


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestDatasets:
    """Tests for dataset registration."""

    def test_create_get_delete(self, client, city_records):
        created = client.post("/api/datasets", json={"name": "cities", "records": city_records})
        assert created.status_code == 201
        body = created.json()
        assert body["name"] == "cities"
        assert body["recordCount"] == 6
        assert body["pointCount"] == 5

        dataset_id = body["id"]
        assert client.get(f"/api/datasets/{dataset_id}").status_code == 200
        assert client.delete(f"/api/datasets/{dataset_id}").status_code == 204
        assert client.get(f"/api/datasets/{dataset_id}").status_code == 404

    def test_empty_dataset_rejected(self, client):
        assert client.post("/api/datasets", json={"records": []}).status_code == 400

    def test_unknown_dataset(self, client):
        response = client.post("/api/spatial/morans-i", json={"datasetId": "nope"})
        assert response.status_code == 404


class TestSpatialEndpoints:
    """Tests for spatial analysis routes."""

    def test_analysis(self, client, clustered_values):
        response = client.post("/api/spatial/analysis", json={"points": _spatial_points(clustered_values)})
        assert response.status_code == 200
        body = response.json()
        assert body["pointCount"] == 10
        assert body["moransI"]["pattern"] == "clustered"
        assert "zScore" in body["moransI"]
        assert "pValue" in body["moransI"]
        assert len(body["neighborhoods"]) == 10
        assert body["insights"]

    def test_analysis_is_cached(self, client, clustered_values):
        payload = {"points": _spatial_points(clustered_values)}
        client.post("/api/spatial/analysis", json=payload)
        client.post("/api/spatial/analysis", json=payload)
        metrics = client.get("/api/insights/cache").json()
        assert metrics["hits"] == 1
        assert metrics["misses"] == 1

    def test_deleted_dataset_is_not_served_from_cache(self, client, clustered_values):
        dataset_id = client.post("/api/datasets", json={"records": _spatial_points(clustered_values)}).json()["id"]
        payload = {"datasetId": dataset_id}
        assert client.post("/api/spatial/analysis", json=payload).status_code == 200
        assert client.delete(f"/api/datasets/{dataset_id}").status_code == 204

        assert client.post("/api/spatial/analysis", json=payload).status_code == 404
        assert client.post("/api/spatial/morans-i", json=payload).status_code == 404

    def test_inline_points_and_dataset_share_cache_entry(self, client, clustered_values):
        points = _spatial_points(clustered_values)
        dataset_id = client.post("/api/datasets", json={"records": points}).json()["id"]
        client.post("/api/spatial/analysis", json={"points": points})
        client.post("/api/spatial/analysis", json={"datasetId": dataset_id})
        assert client.get("/api/insights/cache").json()["hits"] == 1

    def test_too_few_points(self, client, two_clusters):
        response = client.post("/api/spatial/morans-i", json={"points": _points(two_clusters)[:3]})
        assert response.status_code == 422

    def test_morans_i_from_dataset(self, client, clustered_values):
        records = [
            {"id": p.id, "lat": p.lat, "lng": p.lng, "value": p.value} for p in clustered_values
        ]
        dataset_id = client.post("/api/datasets", json={"records": records}).json()["id"]
        response = client.post("/api/spatial/morans-i", json={"datasetId": dataset_id})
        assert response.status_code == 200
        assert response.json()["value"] > 0.3

    def test_missing_input(self, client):
        assert client.post("/api/spatial/morans-i", json={}).status_code == 400

    def test_point_limit(self, clustered_values):
        client = TestClient(create_app(_config(max_spatial_points=5)))
        response = client.post("/api/spatial/analysis", json={"points": _spatial_points(clustered_values)})
        assert response.status_code == 413

    def test_patterns(self, client, clustered_values):
        response = client.post("/api/spatial/patterns", json={"points": _spatial_points(clustered_values)})
        assert response.status_code == 200
        body = response.json()
        assert len(body["clusters"]) == 2
        assert body["dominantRegion"] == "Northern Hemisphere"
        assert body["hasTemporalData"] is False

    def test_choropleth(self, client):
        geojson = {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {"name": "box"},
                "geometry": {"type": "Polygon", "coordinates": [[[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]]},
            }],
        }
        points = [{"lat": 5, "lng": 5, "value": 4}, {"lat": 6, "lng": 6, "value": 8}]
        response = client.post("/api/spatial/choropleth", json={"geojson": geojson, "points": points})
        assert response.status_code == 200
        value = response.json()["values"][0]
        assert value["value"] == pytest.approx(6.0)
        assert value["pointCount"] == 2
        assert value["rank"] == 1


class TestClusterEndpoints:

    def test_dbscan(self, client, two_clusters):
        response = client.post(
            "/api/clusters/dbscan",
            json={"points": _points(two_clusters), "epsKm": 50, "minPoints": 2},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["method"] == "dbscan"
        assert len(body["clusters"]) == 2
        assert body["noise"] == []
        assert sorted(body["clusters"][0]["pointIds"]) == ["a1", "a2", "a3"]
        assert "meanValue" in body["clusters"][0]

    def test_dbscan_invalid_eps(self, client, two_clusters):
        response = client.post("/api/clusters/dbscan", json={"points": _points(two_clusters), "epsKm": 0})
        assert response.status_code == 400

    def test_kmeans(self, client, two_clusters):
        response = client.post(
            "/api/clusters/kmeans",
            json={"points": _points(two_clusters), "k": 2, "seed": 3},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["method"] == "kmeans"
        assert sorted(c["size"] for c in body["clusters"]) == [3, 3]


class TestInsightEndpoints:

    def test_insights(self, client, monthly_records):
        response = client.post("/api/insights", json={"records": monthly_records})
        assert response.status_code == 200
        body = response.json()
        assert body["recordCount"] == 12
        assert body["insights"][0]["kind"] == "trend"
        assert len(body["insights"]) <= 5

    def test_insight_limit(self, client, monthly_records):
        response = client.post("/api/insights", json={"records": monthly_records, "limit": 2})
        assert len(response.json()["insights"]) == 2

    def test_insufficient_data(self, client):
        response = client.post("/api/insights", json={"records": [{"name": "x"}]})
        insights = response.json()["insights"]
        assert insights[0]["description"] == "Insufficient data available for statistical analysis"

    def test_describe(self, client):
        records = [{"name": str(v), "value": v} for v in [10, 20, 30, 40, 50]]
        response = client.post("/api/insights/describe", json={"records": records})
        assert response.status_code == 200
        body = response.json()
        assert body["stats"]["mean"] == pytest.approx(30)
        assert body["stats"]["stdDev"] == pytest.approx(14.142, abs=1e-3)
        assert body["trend"]["slope"] == pytest.approx(10)
        assert body["outliers"]["values"] == []

    def test_describe_without_numbers(self, client):
        body = client.post("/api/insights/describe", json={"records": [{"name": "x"}]}).json()
        assert body["stats"] is None


class TestRecordSource:
    """Tests for dataset expiry."""

    def test_expired_datasets_are_removed(self):
        now = [0.0]
        source = RecordSource(ttl_seconds=10, timer=lambda: now[0])
        kept = source.create([{"value": 1}])
        dropped = source.create([{"value": 2}])

        now[0] = 8.0
        assert source.get(kept.id) is not None
        now[0] = 15.0
        assert source.cleanup_expired() == 1
        assert source.get(dropped.id) is None
        assert source.get(kept.id) is not None
