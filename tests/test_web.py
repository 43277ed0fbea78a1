"""
Tests for the web API — app factory and JSON routes.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from flask.testing import FlaskClient

from pkgbridge.adapters.registry import AdapterRegistry
from pkgbridge.core.models.settings import Settings
from pkgbridge.core.persistence.keystore import MemoryKeystore
from pkgbridge.core.services.deployment import SimulatedIntuneBackend
from pkgbridge.core.use_cases.runtime import Runtime, build_runtime
from pkgbridge.ui.web.server import RUNTIME_KEY, create_app


@pytest.fixture()
def client(runtime: Runtime) -> FlaskClient:
    app = create_app(runtime=runtime)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture()
def ready_client(ready_runtime: Runtime) -> FlaskClient:
    app = create_app(runtime=ready_runtime)
    app.config["TESTING"] = True
    return app.test_client()


class TestAppFactory:
    def test_runtime_registered(self, runtime: Runtime):
        app = create_app(runtime=runtime)
        assert app.extensions[RUNTIME_KEY] is runtime
        assert app.config["MOCK_MODE"] is True

    def test_built_from_config(self, config_file: Path):
        app = create_app(config_path=config_file, mock_mode=True)
        runtime = app.extensions[RUNTIME_KEY]
        assert runtime.base_dir == config_file.parent.resolve()
        assert runtime.settings.deployment.default_groups == ["All Devices"]


class TestHealth:
    def test_health(self, client: FlaskClient):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["status"] == "ok"
        assert data["mock"] is True
        assert data["credentials_ready"] is False
        assert set(data["adapters"]) == {"winget", "chocolatey"}


class TestSearchAPI:
    def test_search(self, client: FlaskClient):
        resp = client.post("/api/search", json={"query": "code"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["total"] == 2
        assert data["results"][0]["id"] == "Microsoft.VisualStudioCode"
        assert data["results"][1]["id"] == "vscode"

    def test_sources_and_filter(self, client: FlaskClient):
        resp = client.post("/api/search", json={
            "query": "reader", "sources": ["winget"], "filter": True,
        })
        data = resp.get_json()
        assert data["sources"] == ["winget"]
        assert [r["name"] for r in data["results"]] == ["Adobe Acrobat Reader (64-bit)"]

    @pytest.mark.parametrize("body", [{}, {"query": "  "}, {"query": 5}])
    def test_empty_query(self, client: FlaskClient, body):
        assert client.post("/api/search", json=body).status_code == 400

    def test_bad_sources(self, client: FlaskClient):
        assert client.post("/api/search", json={"query": "x", "sources": "winget"}).status_code == 400
        assert client.post("/api/search", json={"query": "x", "sources": ["scoop"]}).status_code == 400

    def test_no_sources(self, client: FlaskClient):
        resp = client.post("/api/search", json={"query": "code", "sources": []})
        assert resp.status_code == 400

    def test_catalog_failure(self, client: FlaskClient, runtime: Runtime):
        runtime.registry.get("chocolatey").set_failure("choco exploded")
        resp = client.post("/api/search", json={"query": "code"})
        assert resp.status_code == 502
        data = resp.get_json()
        assert "choco exploded" in data["error"]
        assert data["results"] == []


class TestScriptAPI:
    def test_from_record(self, client: FlaskClient, winget_record):
        resp = client.post("/api/script", json={"package": winget_record.model_dump(mode="json")})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["filename"] == "Microsoft.VisualStudioCode_install.ps1"
        assert "$AppID = 'Microsoft.VisualStudioCode'" in data["script"]

    def test_by_id(self, client: FlaskClient):
        resp = client.post("/api/script", json={"package_id": "googlechrome", "source": "choco"})
        assert resp.status_code == 200
        assert "$PackageID = 'googlechrome'" in resp.get_json()["script"]

    def test_invalid_record(self, client: FlaskClient):
        resp = client.post("/api/script", json={"package": {"name": "x", "source": "scoop"}})
        assert resp.status_code == 400

    def test_missing_package(self, client: FlaskClient):
        assert client.post("/api/script", json={}).status_code == 400

    def test_non_string_query(self, client: FlaskClient):
        resp = client.post("/api/script", json={"package_id": "Google.Chrome", "query": 5})
        assert resp.status_code == 400
        assert "query" in resp.get_json()["error"]

    def test_not_found(self, client: FlaskClient):
        resp = client.post("/api/script", json={"package_id": "Nope.Nothing", "query": "code"})
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "not_found"


class TestCredentialsAPI:
    def test_set_and_status(self, client: FlaskClient):
        assert client.get("/api/credentials").get_json()["ready"] is False
        resp = client.post("/api/credentials", json={
            "tenant_id": "t", "client_id": "c", "client_secret": "s",
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["ok"] is True
        assert data["ready"] is True
        assert "client_secret" not in data
        assert client.get("/api/credentials").get_json()["tenant_id"] == "t"

    def test_missing_fields(self, client: FlaskClient):
        resp = client.post("/api/credentials", json={"tenant_id": "t"})
        assert resp.status_code == 400
        assert resp.get_json()["missing"] == ["client_id", "client_secret"]
        assert client.get("/api/credentials").get_json()["ready"] is False

    def test_non_string_field(self, client: FlaskClient):
        resp = client.post("/api/credentials", json={
            "tenant_id": 1, "client_id": "c", "client_secret": "s",
        })
        assert resp.status_code == 400


class TestDeployAPI:
    def test_gate_closed(self, client: FlaskClient, runtime: Runtime):
        resp = client.post("/api/deploy", json={"package_id": "Google.Chrome", "query": "chrome"})
        assert resp.status_code == 403
        assert runtime.history.entry_count() == 0

    def test_success(self, ready_client: FlaskClient, ready_runtime: Runtime):
        resp = ready_client.post("/api/deploy", json={
            "package_id": "Google.Chrome",
            "query": "chrome",
            "target_groups": ["Pilot", " ", "Finance"],
            "auto_update": True,
        })
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["ok"] is True
        workflow = data["workflow"]
        assert workflow["state"] == "succeeded"
        assert sorted(workflow["config"]["target_groups"]) == ["Finance", "Pilot"]
        assert workflow["config"]["auto_update"] is True
        assert workflow["logs"][-1]["severity"] == "success"
        assert ready_runtime.history.entry_count() == 1

    def test_requires_package_id(self, ready_client: FlaskClient):
        assert ready_client.post("/api/deploy", json={}).status_code == 400

    def test_bad_groups(self, ready_client: FlaskClient):
        resp = ready_client.post("/api/deploy", json={"package_id": "x", "target_groups": "Pilot"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("query", [5, ["chrome"], {"q": "chrome"}])
    def test_non_string_query(self, ready_client: FlaskClient, ready_runtime: Runtime, query):
        resp = ready_client.post("/api/deploy", json={"package_id": "Google.Chrome", "query": query})
        assert resp.status_code == 400
        assert ready_runtime.history.entry_count() == 0

    def test_bad_config_value(self, ready_client: FlaskClient):
        resp = ready_client.post("/api/deploy", json={
            "package_id": "Google.Chrome", "query": "chrome", "silent_install": "maybe",
        })
        assert resp.status_code == 400
        assert resp.get_json()["code"] == "invalid"

    def test_not_found(self, ready_client: FlaskClient):
        resp = ready_client.post("/api/deploy", json={"package_id": "Nope", "query": "chrome"})
        assert resp.status_code == 404

    def test_stage_failure(self, tmp_path: Path, credentials):
        runtime = build_runtime(
            config_path=tmp_path / "pkgbridge.yml",
            settings=Settings(state_dir=str(tmp_path / "state")),
            registry=AdapterRegistry.default(mock_mode=True),
            keystore=MemoryKeystore(credentials),
            backend=SimulatedIntuneBackend(
                fail_stage="assign", failure_reason="Group not found", sleep=lambda _: None,
            ),
        )
        client = create_app(runtime=runtime).test_client()
        resp = client.post("/api/deploy", json={"package_id": "Google.Chrome", "query": "chrome"})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["ok"] is False
        assert data["code"] == "deploy_failed"
        assert data["error"] == "Assignment failed: Group not found"
        assert data["workflow"]["state"] == "configuring"
        assert data["workflow"]["failed_stage"] == "assign"
