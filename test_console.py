"""
Tests for the console app and client
"""

from fastapi.testclient import TestClient

from middleware_console.client import dashboard_summary
from middleware_console.config import ConsoleConfig
from middleware_console.console import create_app
from middleware_console.models import Resource

RESOURCES = [
    {"id": "r1", "host": "a.example.com", "status": "active", "middlewares": "m1:auth:100"},
    {"id": "r2", "host": "b.example.com", "status": "active", "middlewares": ""},
    {"id": "r3", "host": "c.example.com", "status": "disabled"},
]
MIDDLEWARES = [
    {"id": "m1", "name": "auth", "type": "basicAuth", "config": {}},
    {"id": "c1", "name": "secure", "type": "chain", "config": {"middlewares": ["m1", "gone"]}},
]


def make_app(backend):
    return create_app(client_factory=backend.console)


def test_dashboard_status_levels():
    protected = Resource(id="p", middlewares="m1:auth:100")
    unprotected = Resource(id="u")
    disabled = Resource(id="d", status="disabled", middlewares="m1:auth:100")

    assert dashboard_summary([], [], [])["overall_status"] == "neutral"
    assert dashboard_summary([disabled], [], [])["overall_status"] == "neutral"
    assert dashboard_summary([unprotected], [], [])["overall_status"] == "danger"
    assert dashboard_summary([protected, unprotected], [], [])["overall_status"] == "warning"
    assert dashboard_summary([protected, disabled], [], [])["overall_status"] == "success"


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("MIDDLEWARE_MANAGER_API_URL", "http://manager:3456")
    monkeypatch.setenv("REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = ConsoleConfig.from_env()

    assert config.api_url == "http://manager:3456"
    assert config.request_timeout == 5.0
    assert config.log_level == "DEBUG"


def test_health(backend):
    backend.on("GET", "/health", json_body={"status": "ok"})

    with TestClient(make_app(backend)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["backend"]["status"] == "healthy"


def test_refresh_and_dashboard(backend):
    backend.on("GET", "/api/resources", json_body=RESOURCES)
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)

    with TestClient(make_app(backend)) as client:
        assert client.post("/console/resources/refresh").status_code == 200
        assert client.post("/console/middlewares/refresh").status_code == 200
        summary = client.get("/console/dashboard").json()
        snapshot = client.get("/console/middlewares").json()

    assert summary["active_resources"] == 2
    assert summary["disabled_resources"] == 1
    assert summary["protected_resources"] == 1
    assert summary["unprotected_resources"] == 1
    assert summary["middlewares"] == 2
    assert summary["overall_status"] == "warning"
    assert [item["id"] for item in snapshot["items"]] == ["m1", "c1"]


def test_refresh_failure_then_dismiss(backend):
    backend.on("GET", "/api/services", status=500, json_body={"message": "database locked"})

    with TestClient(make_app(backend)) as client:
        response = client.post("/console/services/refresh")
        before = client.get("/console/services").json()
        client.delete("/console/services/error")
        after = client.get("/console/services").json()

    assert response.status_code == 502
    assert response.json()["detail"]["message"] == "database locked"
    assert before["error"]["status_code"] == 500
    assert after["error"] is None


def test_unknown_kind_is_404(backend):
    with TestClient(make_app(backend)) as client:
        assert client.get("/console/routers").status_code == 404
        assert client.get("/console/templates/router/x").status_code == 404


def test_template_endpoint(backend):
    with TestClient(make_app(backend)) as client:
        known = client.get("/console/templates/middleware/rateLimit").json()
        unknown = client.get("/console/templates/service/nope").json()

    assert known["template"] == '{\n  "average": 100,\n  "burst": 50\n}'
    assert known["info"]["label"] == "Rate Limiting"
    assert unknown["template"] == "{}"
    assert unknown["info"]["description"] == "Unknown service type"


def test_chain_endpoint(backend):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)

    with TestClient(make_app(backend)) as client:
        client.post("/console/middlewares/refresh")
        members = client.get("/console/middlewares/c1/chain").json()
        missing = client.get("/console/middlewares/zzz/chain")

    assert members == [
        {"id": "m1", "resolved": True, "label": "auth (basicAuth)"},
        {"id": "gone", "resolved": False, "label": "gone (unknown middleware)"},
    ]
    assert missing.status_code == 404


def test_datasource_endpoints(backend):
    backend.on("GET", "/api/datasource", json_body={
        "active_source": "pangolin",
        "sources": {"pangolin": {"type": "pangolin", "url": "http://pangolin:3001/api/v1"}},
    })
    backend.on("POST", "/api/datasource/pangolin/test", json_body={"message": "ok"})

    with TestClient(make_app(backend)) as client:
        assert client.post("/console/datasources/refresh").status_code == 200
        results = client.post("/console/datasources/test").json()
        snapshot = client.get("/console/datasources").json()

    assert results == {"pangolin": {"state": "success", "message": "Connection successful!"}}
    assert snapshot["active_source"] == "pangolin"
    assert snapshot["connection_status"]["pangolin"]["state"] == "success"


def test_plugin_endpoints(backend):
    backend.on("GET", "/api/plugins", json_body=[
        {"displayName": "GeoBlock", "type": "middleware", "import": "github.com/PascalMinder/geoblock"}
    ])
    backend.on("PUT", "/api/plugins/configpath", json_body={"path": "/etc/traefik/traefik.yml"})
    backend.on("POST", "/api/plugins/install", status=500, json_body={
        "message": "Traefik static configuration path is not set in Middleware Manager."
    })

    with TestClient(make_app(backend)) as client:
        refreshed = client.post("/console/plugins/refresh").json()
        path = client.put("/console/plugins/configpath", json={"path": "/etc/traefik/traefik.yml"}).json()
        rejected = client.post("/console/plugins/install", json={})
        failed = client.post("/console/plugins/install", json={"moduleName": "github.com/PascalMinder/geoblock"})
        snapshot = client.get("/console/plugins").json()
        errors = client.get("/console/dashboard").json()["errors"]

    assert refreshed["items"][0]["displayName"] == "GeoBlock"
    assert path["path"] == "/etc/traefik/traefik.yml"
    assert rejected.status_code == 400
    assert failed.status_code == 502
    assert snapshot["config_path"] == "/etc/traefik/traefik.yml"
    assert errors["plugins"]["status_code"] == 500
