"""Tests for plansync.auth — API key → role mapping and role gates.

Auth is disabled in TestingConfig; these tests switch it on through the
API_AUTH_ENABLED env var, which takes precedence over app config.
"""

import pytest

from plansync.auth import ROLE_HIERARCHY, _parse_api_keys


@pytest.fixture()
def auth_on(monkeypatch):
    monkeypatch.setenv("API_AUTH_ENABLED", "true")
    monkeypatch.setenv("API_KEYS", "view-key:viewer,edit-key:editor,admin-key:admin")


class TestParseApiKeys:
    def test_roles(self, monkeypatch):
        monkeypatch.setenv("API_KEYS", "a:admin, b:editor ,c,d:superuser")
        assert _parse_api_keys() == {"a": "admin", "b": "editor", "c": "viewer", "d": "viewer"}

    def test_unset(self, monkeypatch):
        monkeypatch.delenv("API_KEYS", raising=False)
        assert _parse_api_keys() == {}

    def test_hierarchy(self):
        assert "editor" in ROLE_HIERARCHY["admin"]
        assert "editor" not in ROLE_HIERARCHY["viewer"]


class TestApiKeyAuth:
    def test_missing_key_is_401(self, client, auth_on):
        res = client.get("/api/v1/projects")
        assert res.status_code == 401
        assert res.get_json()["code"] == "ERR_UNAUTHORIZED"

    def test_invalid_key_is_401(self, client, auth_on):
        res = client.get("/api/v1/projects", headers={"X-API-Key": "nope"})
        assert res.status_code == 401

    def test_viewer_can_read(self, client, auth_on):
        res = client.get("/api/v1/projects", headers={"X-API-Key": "view-key"})
        assert res.status_code == 200

    def test_query_param_key(self, client, auth_on):
        assert client.get("/api/v1/projects?api_key=view-key").status_code == 200

    def test_viewer_cannot_stage_writes(self, client, auth_on):
        res = client.post("/api/v1/projects", json={"description": "x"},
                          headers={"X-API-Key": "view-key"})
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

    def test_editor_can_stage_writes(self, client, auth_on):
        res = client.post("/api/v1/projects", json={"description": "x"},
                          headers={"X-API-Key": "edit-key"})
        assert res.status_code == 202

    def test_admin_inherits_editor(self, client, auth_on):
        res = client.post("/api/v1/projects", json={"description": "x"},
                          headers={"X-API-Key": "admin-key"})
        assert res.status_code == 202

    def test_health_is_public(self, client, auth_on):
        assert client.get("/api/v1/health").status_code == 200
        assert client.get("/api/v1/health/live").status_code == 200

    def test_keys_not_configured_is_500(self, client, monkeypatch):
        monkeypatch.setenv("API_AUTH_ENABLED", "true")
        monkeypatch.delenv("API_KEYS", raising=False)
        res = client.get("/api/v1/projects", headers={"X-API-Key": "anything"})
        assert res.status_code == 500
