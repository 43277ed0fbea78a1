"""
Tests for the domain models.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pkgbridge.core.models import (
    Credentials,
    DeploymentConfig,
    DeploymentLogEvent,
    PackageRecord,
    PackageSource,
    Receipt,
    Severity,
    WorkflowSnapshot,
    WorkflowState,
)


class TestPackageSource:
    @pytest.mark.parametrize("value, expected", [
        ("winget", PackageSource.WINGET),
        (" WinGet ", PackageSource.WINGET),
        ("chocolatey", PackageSource.CHOCOLATEY),
        ("choco", PackageSource.CHOCOLATEY),
    ])
    def test_parse(self, value, expected):
        assert PackageSource.parse(value) is expected

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            PackageSource.parse("scoop")

    def test_primary(self):
        assert PackageSource.WINGET.is_primary
        assert not PackageSource.CHOCOLATEY.is_primary


class TestPackageRecord:
    def test_identity(self, winget_record, choco_record):
        assert winget_record.key == ("winget", "Microsoft.VisualStudioCode")
        assert choco_record.key == ("chocolatey", "vscode")

    def test_matches_name_or_id(self, winget_record):
        assert winget_record.matches("studio")
        assert winget_record.matches("MICROSOFT.")
        assert not winget_record.matches("chrome")

    def test_frozen(self, winget_record):
        with pytest.raises(ValidationError):
            winget_record.version = "2.0"

    def test_publisher_optional(self):
        record = PackageRecord(name="x", id="x", version="1", source=PackageSource.WINGET)
        assert record.publisher is None
        assert record.description == ""


class TestCredentials:
    def test_missing_fields(self):
        creds = Credentials(tenant_id="t", client_id="  ", client_secret="")
        assert creds.missing_fields() == ["client_id", "client_secret"]
        assert not creds.is_complete

    def test_complete(self, credentials):
        assert credentials.is_complete
        assert "s3cret" not in repr(credentials)


class TestDeploymentConfig:
    def test_from_winget_record(self, winget_record):
        config = DeploymentConfig.from_record(winget_record, target_groups={"Pilot"})
        assert config.display_name == "Visual Studio Code"
        assert config.publisher == "Microsoft"
        assert config.version == "1.95.3"
        assert config.silent_install is True
        assert config.auto_update is False
        assert config.target_groups == {"Pilot"}
        assert config.install_command.startswith("winget install --id Microsoft.VisualStudioCode")
        assert config.uninstall_command == "winget uninstall --id Microsoft.VisualStudioCode"

    def test_from_choco_record(self, choco_record):
        config = DeploymentConfig.from_record(choco_record)
        assert config.target_groups == set()
        assert config.install_command == "choco install vscode -y"
        assert config.uninstall_command == "choco uninstall vscode -y"

    def test_missing_publisher_is_blank(self):
        record = PackageRecord(name="Tool", id="tool", version="1.0.0", source=PackageSource.CHOCOLATEY)
        assert DeploymentConfig.from_record(record).publisher == ""


class TestLogEvent:
    def test_format(self):
        event = DeploymentLogEvent(timestamp="10:00:00", severity=Severity.ERROR, message="boom")
        assert event.format() == "10:00:00 [ERROR] boom"

    def test_default_timestamp(self):
        event = DeploymentLogEvent(message="hi")
        assert len(event.timestamp) == 8
        assert event.severity is Severity.INFO


class TestReceipt:
    def test_success_and_failure(self):
        ok = Receipt.success(adapter="winget", action_id="a", output="x")
        assert ok.ok and not ok.failed
        bad = Receipt.failure(adapter="winget", action_id="a", error="nope")
        assert bad.failed and bad.error == "nope"


class TestWorkflowSnapshot:
    def test_initial(self):
        snap = WorkflowSnapshot()
        assert snap.state is WorkflowState.SEARCHING
        assert snap.next_stage is None
        assert snap.progress_percent == 0
        assert not snap.failed

    def test_next_stage(self):
        snap = WorkflowSnapshot(stages=("a", "b"), completed_stages=("a",), progress=0.5)
        assert snap.next_stage == "b"
        assert snap.progress_percent == 50

    def test_to_dict(self, winget_record):
        snap = WorkflowSnapshot(
            state=WorkflowState.CONFIGURING,
            results=(winget_record,),
            selected=winget_record,
            config=DeploymentConfig.from_record(winget_record),
        )
        data = snap.to_dict()
        assert data["state"] == "configuring"
        assert data["results"][0]["source"] == "winget"
        assert data["selected"]["id"] == "Microsoft.VisualStudioCode"
        assert data["config"]["target_groups"] == []
        assert data["failed_stage"] is None
