"""
Tests for application bootstrap: liveness, CORS, route mounting and listen.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.api.root import WELCOME_MESSAGE
from app.core import bootstrap
from app.core.context import ServerPhase
from app.core.exceptions import ConfigurationError

from conftest import make_settings


class TestLiveness:
    """GET / answers regardless of database state."""

    def test_welcome_message_with_database_connected(self, build_app):
        app, _ = build_app(wait_for_database=True)

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": WELCOME_MESSAGE}

    def test_welcome_message_while_database_pending(self, build_app):
        app, database = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Welcome to Test application."}
        assert database.database is None

    def test_liveness_probe(self, build_app):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/health/liveness")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"
        assert response.json()["uptime_seconds"] >= 0


class TestCORS:
    """Any origin is allowed."""

    @pytest.mark.parametrize(
        "origin",
        ["http://localhost:4200", "https://frontend.example.com", "null"],
    )
    def test_simple_request_allows_origin(self, build_app, origin):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/", headers={"Origin": origin})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"

    def test_preflight_request(self, build_app):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.options(
                "/api/samples",
                headers={
                    "Origin": "http://localhost:8081",
                    "Access-Control-Request-Method": "POST",
                    "Access-Control-Request-Headers": "content-type",
                },
            )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    def test_error_responses_carry_cors_header(self, build_app):
        app, _ = build_app(mode="hang", route_modules=["sample_routes"])

        with TestClient(app) as client:
            response = client.post(
                "/api/samples",
                content=b"{not json",
                headers={"Content-Type": "application/json", "Origin": "http://a.test"},
            )

        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == "*"


class TestTracing:
    def test_trace_id_is_generated(self, build_app):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/")

        assert response.headers["x-trace-id"]
        assert "x-process-time" in response.headers

    def test_incoming_trace_id_is_echoed(self, build_app):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/", headers={"X-Trace-ID": "trace-abc"})

        assert response.headers["x-trace-id"] == "trace-abc"

    def test_unknown_route_is_json_404(self, build_app):
        app, _ = build_app(mode="hang")

        with TestClient(app) as client:
            response = client.get("/does-not-exist")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "Client error"
        assert body["trace_id"] == response.headers["x-trace-id"]


class TestRouteMounting:
    def test_route_module_by_dotted_path(self, build_app):
        app, _ = build_app(route_modules=["sample_routes"], wait_for_database=True)

        with TestClient(app) as client:
            response = client.get("/api/samples")

        assert response.status_code == 200
        assert response.json() == {"database": "tutorial_db"}

    def test_route_modules_from_settings(self, terminate):
        from conftest import FakeDatabaseManager

        app = bootstrap.create_app(
            settings=make_settings(route_modules="sample_routes"),
            database=FakeDatabaseManager(),
            terminate=terminate,
        )

        paths = {route.path for route in app.routes}
        assert "/api/samples" in paths

    def test_unknown_route_module_is_configuration_error(self, build_app):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app(route_modules=["no_such_module_here"])

        assert exc_info.value.error_code == "ROUTE_MODULE_IMPORT_FAILED"

    def test_module_without_register_is_rejected(self, build_app):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app(route_modules=["json"])

        assert exc_info.value.error_code == "ROUTE_MODULE_INVALID"

    def test_context_is_ready_after_create(self, build_app):
        app, database = build_app()
        context = app.state.context

        assert context.app is app
        assert context.database is database
        assert context.state.phase is ServerPhase.MIDDLEWARE_READY
        assert not context.state.listening


class TestListen:
    """listen() hands the configured host and port to uvicorn."""

    @pytest.fixture
    def captured(self, monkeypatch):
        configs = []

        def fake_run(self, sockets=None):
            configs.append(self.config)

        monkeypatch.setattr(bootstrap.ContextServer, "run", fake_run)
        return configs

    def test_default_port(self, monkeypatch, captured, build_app):
        monkeypatch.delenv("PORT", raising=False)
        app, _ = build_app()

        bootstrap.listen(app.state.context)

        assert captured[0].port == 8080
        assert captured[0].host == "0.0.0.0"

    def test_port_from_environment(self, monkeypatch, captured, build_app):
        monkeypatch.setenv("PORT", "9090")
        app, _ = build_app()

        bootstrap.listen(app.state.context)

        assert captured[0].port == 9090

    @pytest.mark.asyncio
    async def test_startup_marks_listening(self, monkeypatch, build_app):
        app, _ = build_app(mode="hang")
        context = app.state.context

        async def fake_startup(self, sockets=None):
            return None

        monkeypatch.setattr(bootstrap.uvicorn.Server, "startup", fake_startup)
        server = bootstrap.ContextServer(
            bootstrap.uvicorn.Config(app, port=context.settings.port), context
        )

        await server.startup()

        assert context.state.listening
        assert context.state.phase is ServerPhase.LISTENING

    @pytest.mark.asyncio
    async def test_failed_startup_is_not_listening(self, monkeypatch, build_app):
        app, _ = build_app(mode="hang")
        context = app.state.context

        async def failing_startup(self, sockets=None):
            self.should_exit = True

        monkeypatch.setattr(bootstrap.uvicorn.Server, "startup", failing_startup)
        server = bootstrap.ContextServer(bootstrap.uvicorn.Config(app), context)

        await server.startup()

        assert not context.state.listening
