"""Tests for the HTTP transport."""

import json

import asyncpg
import pytest
from fastapi.testclient import TestClient

from pgmcp.core.service import GatewayService
from pgmcp.interfaces.web.app import STATUS_BY_KIND, create_app


@pytest.fixture
def client(settings, tmp_dir, pool_factory):
    service = GatewayService(settings=settings, root=tmp_dir, pool_factory=pool_factory)
    app = create_app(service=service)
    with TestClient(app) as client:
        yield client


class TestHealth:
    def test_healthy(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["database"] == "reader@db.test:5432/shop"

    def test_unhealthy(self, client, fake_db):
        fake_db.ping_error = OSError("connection reset")
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json() == {"status": "unhealthy", "error": "connection reset"}


def test_lifespan_closes_pool(settings, tmp_dir, pool_factory, fake_pool):
    service = GatewayService(settings=settings, root=tmp_dir, pool_factory=pool_factory)
    with TestClient(create_app(service=service)):
        assert service.db_manager.is_connected
    assert fake_pool.closed


class TestToolsApi:
    def test_list_tools(self, client):
        resp = client.get("/api/tools")
        assert resp.status_code == 200
        names = {t["name"] for t in resp.json()}
        assert {"run_query", "list_tables", "describe_table"} <= names

    def test_run_query(self, client, fake_db):
        fake_db.add_query("SELECT id FROM users", columns=["id"], rows=[(1,), (2,)])
        resp = client.post("/api/tools/run_query", json={"query": "SELECT id FROM users"})
        assert resp.status_code == 200
        assert resp.json() == {"columns": ["id"], "rows": [{"id": 1}, {"id": 2}], "count": 2}

    def test_policy_rejection(self, client):
        resp = client.post("/api/tools/run_query", json={"query": "TRUNCATE users"})
        assert resp.status_code == 403
        data = resp.json()
        assert data["kind"] == "policy_rejection"
        assert data["rule"] == "truncate"

    def test_missing_arguments(self, client):
        resp = client.post("/api/tools/run_query")
        assert resp.status_code == 400
        assert resp.json()["kind"] == "argument_error"

    def test_unknown_tool(self, client):
        resp = client.post("/api/tools/drop_everything", json={})
        assert resp.status_code == 404

    def test_execution_error_carries_schema(self, client, fake_db):
        fake_db.add_query(
            "SELECT nme FROM users",
            prepare_error=asyncpg.exceptions.UndefinedColumnError('column "nme" does not exist'),
        )
        resp = client.post("/api/tools/run_query", json={"query": "SELECT nme FROM users"})
        assert resp.status_code == STATUS_BY_KIND["execution_error"]
        data = json.loads(resp.content)
        assert data["sqlstate"] == "42703"
        assert {"column": "name", "type": "text"} in data["schema"]["users"]

    def test_describe_table(self, client):
        resp = client.post("/api/tools/describe_table", json={"table": "orders"})
        assert resp.status_code == 200
        assert [c["column"] for c in resp.json()] == ["id", "user_id", "total"]


class TestCors:
    def test_preflight(self, client):
        resp = client.options(
            "/api/tools/run_query",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "mcp-session-id",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]
        assert "mcp-session-id" in resp.headers["access-control-allow-headers"].lower()

    def test_simple_request_has_origin_header(self, client):
        resp = client.get("/health", headers={"Origin": "http://example.com"})
        assert resp.headers["access-control-allow-origin"] == "*"
