"""
API routes — JSON endpoints for search, scripts, credentials and deploy.

All endpoints return JSON. Grouped under the /api/ prefix.

Status codes:
    400  malformed or incomplete request
    403  deployment refused: no credentials on file
    404  requested package not in the search results
    409  request does not fit the workflow state
    502  a catalog command failed
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from pkgbridge import __version__
from pkgbridge.core.models.deployment import Credentials
from pkgbridge.core.models.package import PackageRecord, PackageSource
from pkgbridge.core.use_cases.runtime import Runtime

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _runtime() -> Runtime:
    from pkgbridge.ui.web.server import RUNTIME_KEY

    return current_app.extensions[RUNTIME_KEY]


def _body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, status: int):  # type: ignore[no-untyped-def]
    return jsonify({"error": message}), status


_STATUS_BY_CODE = {
    "invalid": 400,
    "gate_closed": 403,
    "not_found": 404,
    "conflict": 409,
    "search_failed": 502,
    "save_failed": 500,
}


def _status(code: str | None) -> int:
    return _STATUS_BY_CODE.get(code or "", 400)


def _source(value: object) -> PackageSource | None:
    """Parse an optional source; raises ValueError on unknown names."""
    if value in (None, ""):
        return None
    if not isinstance(value, str):
        raise ValueError(f"Invalid source: {value!r}")
    return PackageSource.parse(value)


# ── Search ───────────────────────────────────────────────────────────


@api_bp.route("/search", methods=["POST"])
def api_search():  # type: ignore[no-untyped-def]
    """Search the catalogs. Body: {query, sources?, filter?}."""
    from pkgbridge.core.use_cases.search import search_packages

    data = _body()
    query = data.get("query")
    if not isinstance(query, str) or not query.strip():
        return _error("Search query must not be empty", 400)

    sources = None
    if data.get("sources") is not None:
        raw = data["sources"]
        if not isinstance(raw, list):
            return _error("'sources' must be a list", 400)
        try:
            sources = [_source(s) for s in raw]
        except ValueError as e:
            return _error(str(e), 400)

    outcome = search_packages(
        _runtime(), query, sources=sources, apply_filter=bool(data.get("filter")),
    )
    if not outcome.ok:
        status = 400 if not outcome.sources else 502
        return jsonify(outcome.to_dict()), status
    return jsonify(outcome.to_dict())


# ── Script ───────────────────────────────────────────────────────────


@api_bp.route("/script", methods=["POST"])
def api_script():  # type: ignore[no-untyped-def]
    """Generate an install script.

    Body is either {package: {name, id, version, source, ...}} for a
    record the client already has, or {package_id, query?, source?}
    to look it up first.
    """
    from pkgbridge.core.use_cases.script import build_script, script_for_record

    runtime = _runtime()
    data = _body()

    if isinstance(data.get("package"), dict):
        try:
            record = PackageRecord.model_validate(data["package"])
        except ValidationError as e:
            return _error(f"Invalid package: {e.errors()[0]['msg']}", 400)
        return jsonify(script_for_record(runtime, record).to_dict())

    package_id = data.get("package_id")
    if not isinstance(package_id, str) or not package_id.strip():
        return _error("Provide 'package' or 'package_id'", 400)
    if not isinstance(data.get("query"), (str, type(None))):
        return _error("'query' must be a string", 400)
    try:
        source = _source(data.get("source"))
    except ValueError as e:
        return _error(str(e), 400)

    result = build_script(runtime, package_id, query=data.get("query"), source=source)
    if not result.ok:
        return jsonify(result.to_dict()), _status(result.code)
    return jsonify(result.to_dict())


# ── Credentials ──────────────────────────────────────────────────────


@api_bp.route("/credentials", methods=["GET"])
def api_credentials_status():  # type: ignore[no-untyped-def]
    return jsonify(_runtime().gate.status())


@api_bp.route("/credentials", methods=["POST"])
def api_credentials_set():  # type: ignore[no-untyped-def]
    """Store credentials. Body: {tenant_id, client_id, client_secret}."""
    data = _body()
    fields = {k: data.get(k) for k in ("tenant_id", "client_id", "client_secret")}
    if any(v is not None and not isinstance(v, str) for v in fields.values()):
        return _error("Credential fields must be strings", 400)

    credentials = Credentials(**{k: v or "" for k, v in fields.items()})
    result = _runtime().gate.set(credentials)
    if not result.ok:
        return jsonify(result.to_dict()), 400
    return jsonify({**result.to_dict(), **_runtime().gate.status()})


# ── Deploy ───────────────────────────────────────────────────────────


@api_bp.route("/deploy", methods=["POST"])
def api_deploy():  # type: ignore[no-untyped-def]
    """Run a deployment to completion.

    Body: {package_id, query?, source?, target_groups?, silent_install?,
    auto_update?}. Stage failures are reported in the body with
    ``ok: false``; the request itself succeeded.
    """
    from pkgbridge.core.use_cases.deploy import deploy_package

    runtime = _runtime()
    data = _body()

    package_id = data.get("package_id")
    if not isinstance(package_id, str) or not package_id.strip():
        return _error("'package_id' is required", 400)
    if not isinstance(data.get("query"), (str, type(None))):
        return _error("'query' must be a string", 400)
    try:
        source = _source(data.get("source"))
    except ValueError as e:
        return _error(str(e), 400)

    groups = data.get("target_groups")
    if groups is not None and (
        not isinstance(groups, list) or not all(isinstance(g, str) for g in groups)
    ):
        return _error("'target_groups' must be a list of strings", 400)

    if not runtime.gate.is_ready():
        return _error("Enterprise credentials required before deploying", 403)

    result = deploy_package(
        runtime,
        package_id,
        query=data.get("query"),
        source=source,
        target_groups=groups,
        silent_install=data.get("silent_install"),
        auto_update=data.get("auto_update"),
    )

    if result.code not in (None, "deploy_failed"):
        return jsonify(result.to_dict()), _status(result.code)
    return jsonify(result.to_dict())


# ── Health ───────────────────────────────────────────────────────────


@api_bp.route("/health")
def api_health():  # type: ignore[no-untyped-def]
    runtime = _runtime()
    return jsonify({
        "status": "ok",
        "version": __version__,
        "mock": runtime.registry.mock_mode,
        "credentials_ready": runtime.gate.is_ready(),
        "adapters": runtime.registry.adapter_status(),
    })
