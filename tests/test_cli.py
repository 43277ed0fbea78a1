"""
Tests for CLI commands — search, script, credentials, deploy, history, config.

Every invocation runs against the demo catalog (``--mock``) and a
pkgbridge.yml under tmp_path, so nothing touches the real machine.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from pkgbridge.main import cli


def _run(config: Path, *args: str, input: str | None = None):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", str(config), "--mock", *args], input=input)


def _set_credentials(config: Path):
    return _run(
        config, "credentials", "set",
        "--tenant-id", "tenant-1", "--client-id", "client-1", "--client-secret", "s3cret",
    )


@pytest.fixture
def failing_config(config_file: Path) -> Path:
    text = config_file.read_text().replace(
        "  stage_delay_scale: 0\n", "  stage_delay_scale: 0\n  fail_stage: upload\n",
    )
    config_file.write_text(text)
    return config_file


class TestCLIGlobal:
    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "winget/chocolatey" in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_file(self, tmp_path: Path):
        result = _run(tmp_path / "absent.yml", "search", "code")
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestSearchCommand:
    def test_table(self, config_file: Path):
        result = _run(config_file, "search", "code")
        assert result.exit_code == 0
        assert "2 package(s)" in result.output
        assert result.output.index("Microsoft.VisualStudioCode") < result.output.index("(vscode)")

    def test_json(self, config_file: Path):
        result = _run(config_file, "search", "code", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["total"] == 2
        assert [r["source"] for r in data["results"]] == ["winget", "chocolatey"]

    def test_single_source(self, config_file: Path):
        result = _run(config_file, "search", "chrome", "-s", "choco", "--json")
        data = json.loads(result.output)
        assert data["sources"] == ["chocolatey"]
        assert [r["id"] for r in data["results"]] == ["googlechrome"]

    def test_no_match(self, config_file: Path):
        result = _run(config_file, "search", "zzzz")
        assert result.exit_code == 0
        assert "No package found" in result.output


class TestScriptCommand:
    def test_prints_script(self, config_file: Path):
        result = _run(config_file, "script", "Microsoft.VisualStudioCode", "--query", "code")
        assert result.exit_code == 0
        assert "$AppID = 'Microsoft.VisualStudioCode'" in result.output
        assert result.output.rstrip().endswith("exit 0")

    def test_choco_script(self, config_file: Path):
        result = _run(config_file, "script", "vscode", "-s", "chocolatey")
        assert result.exit_code == 0
        assert "$PackageID = 'vscode'" in result.output

    def test_saves_into_directory(self, config_file: Path, tmp_path: Path):
        out = tmp_path / "scripts"
        out.mkdir()
        result = _run(config_file, "script", "Google.Chrome", "-q", "chrome", "-o", str(out))
        assert result.exit_code == 0
        saved = out / "Google.Chrome_install.ps1"
        assert saved.is_file()
        assert "Google.Chrome" in saved.read_text(encoding="utf-8")

    def test_existing_file_not_overwritten(self, config_file: Path, tmp_path: Path):
        target = tmp_path / "install.ps1"
        target.write_text("keep me")
        result = _run(config_file, "script", "Google.Chrome", "-q", "chrome", "-o", str(target))
        assert result.exit_code == 1
        assert "not overwritten" in result.output
        assert target.read_text() == "keep me"

        forced = _run(
            config_file, "script", "Google.Chrome", "-q", "chrome", "-o", str(target), "--force",
        )
        assert forced.exit_code == 0
        assert "Google.Chrome" in target.read_text(encoding="utf-8")

    def test_unknown_package(self, config_file: Path):
        result = _run(config_file, "script", "No.Such.Package", "--query", "code", "--json")
        assert result.exit_code == 1
        assert json.loads(result.output)["code"] == "not_found"


class TestCredentialsCommand:
    def test_status_without_credentials(self, config_file: Path):
        result = _run(config_file, "credentials", "status")
        assert result.exit_code == 0
        assert "deployments are blocked" in result.output

    def test_set_then_status(self, config_file: Path, tmp_path: Path):
        assert _set_credentials(config_file).exit_code == 0
        assert (tmp_path / "secrets" / "credentials.json").is_file()

        result = _run(config_file, "credentials", "status", "--json")
        status = json.loads(result.output)
        assert status == {"ready": True, "tenant_id": "tenant-1", "client_id": "client-1"}

    def test_set_via_prompts(self, config_file: Path):
        result = _run(config_file, "credentials", "set", input="tenant-1\nclient-1\ns3cret\n")
        assert result.exit_code == 0
        assert "deployments enabled" in result.output
        assert "s3cret" not in result.output

    def test_blank_field_rejected(self, config_file: Path):
        result = _run(
            config_file, "credentials", "set",
            "--tenant-id", "t", "--client-id", " ", "--client-secret", "s",
        )
        assert result.exit_code == 1
        assert "Client ID" in result.output

    def test_clear(self, config_file: Path):
        _set_credentials(config_file)
        result = _run(config_file, "credentials", "clear", "--yes")
        assert result.exit_code == 0
        status = json.loads(_run(config_file, "credentials", "status", "--json").output)
        assert status["ready"] is False


class TestDeployCommand:
    def test_blocked_without_credentials(self, config_file: Path, tmp_path: Path):
        result = _run(config_file, "deploy", "Google.Chrome", "-q", "chrome")
        assert result.exit_code == 1
        assert "Enterprise credentials required" in result.output
        assert not (tmp_path / "state" / "deployments.ndjson").exists()

    def test_success(self, config_file: Path):
        _set_credentials(config_file)
        result = _run(config_file, "deploy", "Google.Chrome", "-q", "chrome", "-g", "Pilot")
        assert result.exit_code == 0, result.output
        assert "Connected to Microsoft Graph" in result.output
        assert "Deployment completed successfully" in result.output
        assert "Deployment succeeded" in result.output

    def test_json(self, config_file: Path):
        _set_credentials(config_file)
        result = _run(config_file, "deploy", "vscode", "-s", "choco", "--no-auto-update", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["ok"] is True
        workflow = data["workflow"]
        assert workflow["state"] == "succeeded"
        assert workflow["progress"] == 1.0
        assert workflow["config"]["target_groups"] == ["All Devices"]

    def test_stage_failure(self, failing_config: Path):
        _set_credentials(failing_config)
        result = _run(failing_config, "deploy", "Google.Chrome", "-q", "chrome")
        assert result.exit_code == 1
        assert "Upload failed: Simulated failure" in result.output


class TestHistoryCommand:
    def test_empty(self, config_file: Path):
        result = _run(config_file, "history")
        assert result.exit_code == 0
        assert "No deployments recorded" in result.output

    def test_after_deploy(self, config_file: Path):
        _set_credentials(config_file)
        _run(config_file, "deploy", "Google.Chrome", "-q", "chrome")
        result = _run(config_file, "history", "--json")
        entries = json.loads(result.output)
        assert len(entries) == 1
        assert entries[0]["package_id"] == "Google.Chrome"
        assert entries[0]["status"] == "succeeded"
        assert entries[0]["target_groups"] == ["All Devices"]


class TestConfigCheckCommand:
    def test_valid(self, config_file: Path):
        result = _run(config_file, "config", "check")
        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_invalid(self, tmp_path: Path):
        config = tmp_path / "pkgbridge.yml"
        config.write_text("search:\n  timeout: -1\n")
        result = CliRunner().invoke(cli, ["--config", str(config), "config", "check", "--json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["valid"] is False
