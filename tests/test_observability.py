"""
Tests for logging configuration — level resolution and handler setup.
"""

from __future__ import annotations

import logging

import pytest

from pkgbridge.core.observability.logging_config import (
    ENV_FILE,
    ENV_LEVEL,
    resolve_level,
    setup_from_flags,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    level = root.level
    yield
    # drop what setup_logging installed, keep pytest's capture handlers
    for handler in list(root.handlers):
        if not type(handler).__module__.startswith("_pytest"):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.raiseExceptions = True


class TestResolveLevel:
    def test_default(self):
        assert resolve_level(environ={}) == "WARNING"

    def test_environment(self):
        assert resolve_level(environ={ENV_LEVEL: "INFO"}) == "INFO"

    def test_flags_beat_environment(self):
        env = {ENV_LEVEL: "ERROR"}
        assert resolve_level(debug=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, environ=env) == "INFO"
        assert resolve_level(quiet=True, environ={ENV_LEVEL: "DEBUG"}) == "ERROR"

    def test_debug_beats_quiet(self):
        assert resolve_level(debug=True, quiet=True, environ={}) == "DEBUG"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back(self):
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "pkgbridge.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("pkgbridge.test").debug("to the file only")
        for handler in root.handlers:
            handler.flush()
        assert "to the file only" in log_file.read_text(encoding="utf-8")

    def test_third_party_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("werkzeug").level == logging.WARNING

    def test_setup_from_flags(self, monkeypatch, tmp_path):
        monkeypatch.delenv(ENV_LEVEL, raising=False)
        monkeypatch.setenv(ENV_FILE, str(tmp_path / "out.log"))
        assert setup_from_flags(verbose=True) == "INFO"
        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
