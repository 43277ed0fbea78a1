"""
Tests for persistence — credential keystores, deployment history, script store.
"""

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest

from pkgbridge.core.models.deployment import Credentials
from pkgbridge.core.models.template import GeneratedFile
from pkgbridge.core.persistence.audit import AuditWriter, DeploymentAuditEntry
from pkgbridge.core.persistence.keystore import FileKeystore, KeystoreError, MemoryKeystore
from pkgbridge.core.services.script_store import save_script


# ── Keystores ────────────────────────────────────────────────────────


class TestMemoryKeystore:
    def test_round_trip_and_clear(self, credentials):
        store = MemoryKeystore()
        assert store.load() is None
        store.save(credentials)
        assert store.load() == credentials
        assert store.save_count == 1
        store.clear()
        assert store.load() is None


class TestFileKeystore:
    def test_save_and_load(self, tmp_path: Path, credentials):
        store = FileKeystore(tmp_path / "creds.json")
        store.save(credentials)
        assert FileKeystore(tmp_path / "creds.json").load() == credentials

    def test_secret_not_stored_in_clear(self, tmp_path: Path, credentials):
        path = tmp_path / "creds.json"
        FileKeystore(path).save(credentials)

        raw = path.read_text()
        assert "s3cret" not in raw
        envelope = json.loads(raw)
        assert envelope["tenant_id"] == "tenant-1"
        assert envelope["algorithm"] == "aes-256-gcm"

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_key_file_private(self, tmp_path: Path, credentials):
        store = FileKeystore(tmp_path / "creds.json")
        store.save(credentials)
        mode = stat.S_IMODE(os.stat(store.key_path).st_mode)
        assert mode == 0o600

    def test_missing_file(self, tmp_path: Path):
        assert FileKeystore(tmp_path / "nope.json").load() is None

    def test_tampered_ids_rejected(self, tmp_path: Path, credentials):
        path = tmp_path / "creds.json"
        FileKeystore(path).save(credentials)
        envelope = json.loads(path.read_text())
        envelope["tenant_id"] = "someone-else"
        path.write_text(json.dumps(envelope))
        assert FileKeystore(path).load() is None

    def test_corrupt_file(self, tmp_path: Path, credentials):
        path = tmp_path / "creds.json"
        FileKeystore(path).save(credentials)
        path.write_text("{not json")
        assert FileKeystore(path).load() is None

    def test_lost_key(self, tmp_path: Path, credentials):
        store = FileKeystore(tmp_path / "creds.json")
        store.save(credentials)
        store.key_path.unlink()
        assert store.load() is None

    def test_clear(self, tmp_path: Path, credentials):
        store = FileKeystore(tmp_path / "creds.json")
        store.save(credentials)
        store.clear()
        assert store.load() is None
        store.clear()  # idempotent

    def test_unwritable_location(self, tmp_path: Path, credentials):
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = FileKeystore(blocker / "sub" / "creds.json")
        with pytest.raises(KeystoreError):
            store.save(credentials)


# ── Deployment history ───────────────────────────────────────────────


class TestAuditWriter:
    def test_write_and_read(self, tmp_path: Path):
        writer = AuditWriter(state_dir=tmp_path)
        writer.write(DeploymentAuditEntry(package_id="a", status="succeeded"))
        writer.write(DeploymentAuditEntry(package_id="b", status="failed", error="boom"))

        assert writer.path == tmp_path / "deployments.ndjson"
        entries = writer.read_all()
        assert [e.package_id for e in entries] == ["a", "b"]
        assert entries[1].error == "boom"
        assert writer.entry_count() == 2

    def test_read_recent(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "h.ndjson")
        for i in range(5):
            writer.write(DeploymentAuditEntry(package_id=str(i)))
        assert [e.package_id for e in writer.read_recent(2)] == ["3", "4"]
        assert writer.read_recent(0) == []

    def test_corrupt_lines_skipped(self, tmp_path: Path):
        path = tmp_path / "h.ndjson"
        writer = AuditWriter(path=path)
        writer.write(DeploymentAuditEntry(package_id="ok"))
        with path.open("a") as f:
            f.write("garbage\n\n")
        assert [e.package_id for e in writer.read_all()] == ["ok"]

    def test_missing_ledger(self, tmp_path: Path):
        writer = AuditWriter(path=tmp_path / "none.ndjson")
        assert writer.read_all() == []
        assert writer.entry_count() == 0


# ── Script store ─────────────────────────────────────────────────────


def _generated(content: str = "exit 0\n") -> GeneratedFile:
    return GeneratedFile(path="App_install.ps1", content=content)


class TestSaveScript:
    def test_save_into_directory(self, tmp_path: Path):
        result = save_script(_generated(), tmp_path)
        assert result.ok
        assert result.path == tmp_path / "App_install.ps1"
        assert result.path.read_text() == "exit 0\n"

    def test_save_to_file(self, tmp_path: Path):
        target = tmp_path / "out" / "custom.ps1"
        result = save_script(_generated(), target)
        assert result.ok
        assert target.is_file()

    def test_existing_file_is_cancellation(self, tmp_path: Path):
        target = tmp_path / "x.ps1"
        target.write_text("old")
        result = save_script(_generated(), target)
        assert result.cancelled
        assert not result.ok
        assert result.error is None
        assert target.read_text() == "old"

    def test_overwrite(self, tmp_path: Path):
        target = tmp_path / "x.ps1"
        target.write_text("old")
        assert save_script(_generated(), target, overwrite=True).ok
        assert target.read_text() == "exit 0\n"

    def test_empty_script_rejected(self, tmp_path: Path):
        result = save_script(_generated(""), tmp_path / "x.ps1")
        assert result.error
        assert not (tmp_path / "x.ps1").exists()

    def test_write_error(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        result = save_script(_generated(), blocker / "x.ps1")
        assert result.error
        assert result.to_dict()["ok"] is False
