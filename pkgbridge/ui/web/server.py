"""
Web API server — Flask app factory.

Exposes the search, script, credential and deploy operations as a
local JSON API, the same surface the desktop front end talks to.
"""

from __future__ import annotations

import logging
from pathlib import Path

from flask import Flask

from pkgbridge.core.use_cases.runtime import Runtime, build_runtime

logger = logging.getLogger(__name__)

RUNTIME_KEY = "pkgbridge.runtime"


def create_app(
    runtime: Runtime | None = None,
    config_path: Path | None = None,
    mock_mode: bool = False,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        runtime: Pre-built collaborators. Built from settings if None.
        config_path: Path to pkgbridge.yml (only used to build a runtime).
        mock_mode: Serve searches from the demo catalog.

    Returns:
        Configured Flask application.

    Raises:
        ConfigError: If a runtime has to be built and the config is invalid.
    """
    if runtime is None:
        runtime = build_runtime(config_path=config_path, mock_mode=mock_mode)

    app = Flask(__name__)
    app.config["MOCK_MODE"] = runtime.registry.mock_mode
    app.config["MAX_CONTENT_LENGTH"] = 1024 * 1024
    app.extensions[RUNTIME_KEY] = runtime

    from pkgbridge.ui.web.routes_api import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    logger.info("Web API app created (base=%s)", runtime.base_dir)
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting web API on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
