"""HTTP tests for sync status, manual refresh, session gating and health probes."""

from conftest import PLAN_URL

from plansync.core.exceptions import NetworkError


class TestSessionAndRefresh:
    def test_refresh_without_session_is_409(self, client, live_feeds):
        res = client.post("/api/v1/sync/refresh")
        assert res.status_code == 409
        assert res.get_json()["code"] == "ERR_SESSION_INACTIVE"
        assert live_feeds.fetch_calls == []

    def test_session_start_runs_mount_pass(self, client, engine, live_feeds):
        res = client.post("/api/v1/session/start")
        assert res.status_code == 200
        body = res.get_json()
        assert body["session"]["active"] is True
        assert body["sync"]["trigger"] == "mount"
        assert body["sync"]["source"] == "live"
        assert engine.scheduler.is_running

    def test_manual_refresh(self, client, live_feeds):
        client.post("/api/v1/session/start")
        res = client.post("/api/v1/sync/refresh")
        assert res.status_code == 200
        assert res.get_json()["trigger"] == "manual"

    def test_refresh_failure_reports_fallback(self, client, gateway):
        gateway.feeds[PLAN_URL] = NetworkError(PLAN_URL, status_code=502)
        client.post("/api/v1/session/start")
        body = client.post("/api/v1/sync/refresh").get_json()
        assert body["source"] == "default"
        assert body["error_type"] == "NetworkError"

    def test_heartbeat(self, client):
        client.post("/api/v1/session/start")
        body = client.post("/api/v1/session/heartbeat").get_json()
        assert body["session"]["last_activity"] is not None

    def test_session_end_stops_timer(self, client, engine, live_feeds):
        client.post("/api/v1/session/start")
        res = client.post("/api/v1/session/end")
        assert res.get_json()["session"]["active"] is False
        assert not engine.scheduler.is_running

    def test_status(self, client, live_feeds):
        client.post("/api/v1/session/start")
        data = client.get("/api/v1/sync/status").get_json()
        assert data["store"]["source"] == "live"
        assert data["last_result"]["record_count"] == 3
        assert data["syncing"] is False
        assert data["pending_mutations"] == 0


class TestHealth:
    def test_health(self, client):
        assert client.get("/api/v1/health").get_json()["status"] == "ok"

    def test_ready_before_first_publish(self, client):
        assert client.get("/api/v1/health/ready").status_code == 503

    def test_ready_after_sync(self, client, engine, live_feeds):
        engine.sync.run()
        assert client.get("/api/v1/health/ready").status_code == 200

    def test_live(self, client):
        body = client.get("/api/v1/health/live").get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["cache"]["backend"] == "memory"

    def test_live_degraded_after_failed_sync(self, client, engine, gateway):
        gateway.feeds[PLAN_URL] = NetworkError(PLAN_URL)
        engine.sync.run()
        body = client.get("/api/v1/health/live").get_json()
        assert body["status"] == "degraded"


class TestAppBasics:
    def test_request_headers(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert "X-Request-Duration-Ms" in res.headers

    def test_unknown_api_route(self, client):
        res = client.get("/api/v1/nope")
        assert res.status_code == 404
        assert res.get_json()["path"] == "/api/v1/nope"

    def test_method_not_allowed(self, client):
        assert client.delete("/api/v1/projects").status_code == 405

    def test_sync_now_cli(self, app, live_feeds):
        result = app.test_cli_runner().invoke(args=["sync-now"])
        assert result.exit_code == 0
        assert "source=live" in result.output
        assert "records=3" in result.output
