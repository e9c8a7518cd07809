"""HTTP tests for the projects, mutations and dashboard endpoints."""

import pytest


@pytest.fixture()
def synced(engine, live_feeds):
    """Engine after one successful live pass."""
    engine.sync.run()
    return engine


class TestListProjects:
    def test_empty_before_first_sync(self, client):
        res = client.get("/api/v1/projects")
        assert res.status_code == 200
        data = res.get_json()
        assert data["items"] == []
        assert data["source"] == "empty"

    def test_lists_live_records(self, client, synced):
        data = client.get("/api/v1/projects").get_json()
        assert data["total"] == 3
        assert data["source"] == "live"
        assert data["items"][0]["status"] == "InProgress"

    def test_year_filter(self, client, synced):
        data = client.get("/api/v1/projects?year=2025").get_json()
        assert [p["description"] for p in data["items"]] == ["Launch App"]

    def test_search_by_code_or_description(self, client, synced):
        assert client.get("/api/v1/projects?q=vne-01").get_json()["total"] == 1
        assert client.get("/api/v1/projects?q=hub").get_json()["total"] == 1

    def test_pagination(self, client, synced):
        data = client.get("/api/v1/projects?limit=1&offset=1").get_json()
        assert data["total"] == 3
        assert [p["id"] for p in data["items"]] == ["p-1"]

    def test_get_one(self, client, synced):
        res = client.get("/api/v1/projects/p-4")
        assert res.status_code == 200
        assert res.get_json()["code"] == "5"

    def test_get_unknown_is_404(self, client, synced):
        res = client.get("/api/v1/projects/p-99")
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"


class TestStageEndpoints:
    def test_create_returns_202_and_is_listed(self, client, synced):
        res = client.post("/api/v1/projects", json={"description": "Launch Podcast", "type": "Strategic"})
        assert res.status_code == 202
        body = res.get_json()
        assert body["project"]["id"].startswith("local-")
        assert body["mutation"]["state"] == "pending"

        ids = [p["id"] for p in client.get("/api/v1/projects").get_json()["items"]]
        assert body["project"]["id"] in ids

    def test_create_validation_error_is_422(self, client):
        res = client.post("/api/v1/projects", json={"description": "x", "quarter": 9})
        assert res.status_code == 422
        body = res.get_json()
        assert body["code"] == "ERR_VALIDATION_INVALID"
        assert "quarter" in body["details"]

    def test_create_requires_json_object(self, client):
        res = client.post("/api/v1/projects", json=["not", "an", "object"])
        assert res.status_code == 400

    def test_form_body_rejected(self, client):
        res = client.post("/api/v1/projects", data="description=x",
                          content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415
        assert res.get_json()["code"] == "ERR_UNSUPPORTED_MEDIA"

    def test_patch(self, client, synced):
        res = client.patch("/api/v1/projects/p-0", json={"status": "Done"})
        assert res.status_code == 202
        assert client.get("/api/v1/projects/p-0").get_json()["status"] == "Done"

    def test_patch_unknown_is_404(self, client, synced):
        res = client.patch("/api/v1/projects/p-99", json={"status": "Done"})
        assert res.status_code == 404

    def test_failed_forward_surfaces_notice(self, client, synced, gateway):
        gateway.write_error = "connection refused"
        client.post("/api/v1/projects", json={"description": "Launch Podcast"})

        notices = client.get("/api/v1/notices").get_json()
        assert notices["total"] == 1
        failed = client.get("/api/v1/mutations?state=failed").get_json()
        assert failed["total"] == 1

    def test_mutations_bad_state(self, client):
        res = client.get("/api/v1/mutations?state=lost")
        assert res.status_code == 422


class TestDashboardEndpoints:
    def test_dashboard(self, client, synced):
        data = client.get("/api/v1/dashboard").get_json()
        assert data["stats"]["total"] == 3
        assert data["types"]["annual_count"] == 1

    def test_dashboard_year(self, client, synced):
        data = client.get("/api/v1/dashboard?year=2025").get_json()
        assert data["stats"]["total"] == 1
        assert data["year"] == 2025

    def test_members(self, client, synced):
        data = client.get("/api/v1/members").get_json()
        assert data["items"][0]["name"] == "AnhTH"

    def test_reports(self, client, synced):
        assert client.get("/api/v1/reports").get_json()["total"] == 2
        assert client.get("/api/v1/reports?year=2025").get_json()["total"] == 1

    def test_documents(self, client, synced):
        items = client.get("/api/v1/documents").get_json()["items"]
        assert items[0]["name"] == "Guide"
