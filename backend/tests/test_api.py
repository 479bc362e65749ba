"""Tests for the HTTP surface with stores and pipeline overridden."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from conftest import make_collectors
from hottopic.main import app, get_pipeline, get_record_store, get_report_renderer, get_weight_store
from hottopic.pipeline import HotTopicPipeline
from hottopic.sources.base import create_http_client

VALID_WEIGHTS = {
    "name": "Balanced",
    "exposure": {"news": 0.2, "video": 0.2, "microblog": 0.2, "photo": 0.2, "short_video": 0.2},
    "engagement": {"video": 0.25, "microblog": 0.25, "photo": 0.25, "short_video": 0.25},
    "demand": {"trend": 0.2, "video": 0.2, "microblog": 0.2, "photo": 0.2, "short_video": 0.2},
    "overall": {"exposure": 0.34, "engagement": 0.33, "demand": 0.33},
    "engagement_detail": {"likes": 0.4, "comments": 0.3, "shares": 0.3},
}


@pytest.fixture
def client(weight_store, record_store, renderer, fake_insights):
    def pipeline():
        return HotTopicPipeline(
            weight_store=weight_store,
            record_store=record_store,
            collectors=make_collectors(),
            insight_service=fake_insights,
            report_renderer=renderer,
            clamp=False,
        )

    app.dependency_overrides[get_weight_store] = lambda: weight_store
    app.dependency_overrides[get_record_store] = lambda: record_store
    app.dependency_overrides[get_report_renderer] = lambda: renderer
    app.dependency_overrides[get_pipeline] = pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def start(client, keywords=("coffee",)):
    return client.post(
        "/hot-topics/start",
        json={"keywords": list(keywords), "start_date": "2024-03-01", "end_date": "2024-03-08"},
    )


class TestHealthAndWeights:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_get_weights_creates_default(self, client):
        body = client.get("/weights").json()

        assert body["name"] == "Default"
        assert body["is_active"] is True
        assert body["exposure"]["news"] == 0.3

    def test_save_weights(self, client):
        response = client.post("/weights", json=VALID_WEIGHTS)

        assert response.status_code == 200
        assert response.json()["name"] == "Balanced"
        assert client.get("/weights").json()["id"] == response.json()["id"]

    def test_invalid_weights_rejected(self, client):
        payload = {**VALID_WEIGHTS, "overall": {"exposure": 0.5, "engagement": 0.5, "demand": 0.5}}

        response = client.post("/weights", json=payload)

        assert response.status_code == 400
        assert response.json()["field"] == "overall"

    def test_normalize_on_save(self, client):
        payload = {**VALID_WEIGHTS, "overall": {"exposure": 2, "engagement": 1, "demand": 1}, "normalize": True}

        response = client.post("/weights", json=payload)

        assert response.status_code == 200
        assert response.json()["overall"]["exposure"] == 0.5

    def test_history_and_activate(self, client):
        default_id = client.get("/weights").json()["id"]
        client.post("/weights", json=VALID_WEIGHTS)

        history = client.get("/weights/history", params={"limit": 5}).json()
        assert [c["name"] for c in history] == ["Balanced", "Default"]

        activated = client.post(f"/weights/activate/{default_id}")
        assert activated.status_code == 200
        assert client.get("/weights").json()["id"] == default_id

    def test_activate_missing(self, client):
        assert client.post("/weights/activate/999").status_code == 404


class TestHotTopics:
    def test_start_returns_scored_records(self, client):
        response = start(client, ["coffee", "tea"])

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        first = body["results"][0]
        assert first["keyword"] == "coffee"
        assert first["metrics"]["overall"] == 2
        assert first["grades"]["overall"] == "low"
        assert first["insight"]["summary"] == "Looks hot: coffee"
        assert first["report_id"].startswith("RPT-")

    def test_start_validation_error(self, client):
        response = client.post(
            "/hot-topics/start",
            json={"keywords": ["coffee"], "start_date": "2024-03-08", "end_date": "2024-03-01"},
        )

        assert response.status_code == 400

    def test_duplicate_run_conflicts(self, client):
        assert start(client).status_code == 200

        response = start(client)

        assert response.status_code == 409
        assert response.json()["keyword"] == "coffee"

    def test_results_get_and_delete(self, client):
        record_id = start(client).json()["results"][0]["id"]

        listed = client.get("/hot-topics/results", params={"keyword": "coffee"}).json()
        assert listed["count"] == 1

        detail = client.get(f"/hot-topics/{record_id}")
        assert detail.status_code == 200
        assert detail.json()["insight"]["key_findings"] == ["finding"]

        assert client.delete(f"/hot-topics/{record_id}").status_code == 200
        assert client.get(f"/hot-topics/{record_id}").status_code == 404
        assert client.delete(f"/hot-topics/{record_id}").status_code == 404

    def test_timeseries_and_stats(self, client, record_store, make_record):
        for day, overall in ((1, 60), (2, 62), (3, 70)):
            record_store.save(make_record(on=date(2024, 3, day), overall=overall))

        series = client.get("/hot-topics/timeseries/coffee", params={"start_date": "2024-03-02"}).json()
        assert [r["date"] for r in series] == ["2024-03-02", "2024-03-03"]

        stats = client.get("/hot-topics/stats/coffee").json()
        assert stats["count"] == 3
        assert stats["overall"]["max"] == 70
        assert stats["trend"] == "increasing"

    def test_bad_query_date(self, client):
        assert client.get("/hot-topics/results", params={"start_date": "yesterday-ish"}).status_code == 400


class TestReports:
    def test_report_served_as_html(self, client):
        report_id = start(client).json()["results"][0]["report_id"]

        response = client.get(f"/reports/{report_id}")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "coffee" in response.text

    @pytest.mark.parametrize("report_id", ["RPT-1-ABCDEFGHI", "..%2Fsecret"])
    def test_unknown_report(self, client, report_id):
        assert client.get(f"/reports/{report_id}").status_code == 404


class TestPipelineDependency:
    async def test_collectors_share_the_app_client(self, weight_store, record_store, renderer):
        async with create_http_client() as http_client:
            pipeline = get_pipeline(
                http_client=http_client,
                weight_store=weight_store,
                record_store=record_store,
                report_renderer=renderer,
            )

            assert len(pipeline.collectors) == 6
            assert all(c.client is http_client for c in pipeline.collectors)
