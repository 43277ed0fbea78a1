"""
Script use case — generate (and optionally save) an install script.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pkgbridge.core.models.package import PackageRecord, PackageSource
from pkgbridge.core.models.template import GeneratedFile
from pkgbridge.core.services.generators.install_script import generate_install_script
from pkgbridge.core.services.script_store import SaveResult, save_script
from pkgbridge.core.use_cases.runtime import Runtime
from pkgbridge.core.use_cases.search import search_and_select

logger = logging.getLogger(__name__)


@dataclass
class ScriptResult:
    """Result of generating an install script."""

    record: PackageRecord | None = None
    generated: GeneratedFile | None = None
    saved: SaveResult | None = None
    error: str | None = None
    code: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error, "code": self.code}
        result: dict = {
            "package": self.record.model_dump(mode="json") if self.record else None,
            "filename": self.generated.path if self.generated else None,
            "script": self.generated.content if self.generated else "",
        }
        if self.saved is not None:
            result["saved"] = self.saved.to_dict()
        return result


def script_for_record(
    runtime: Runtime,
    record: PackageRecord,
    output: Path | None = None,
    overwrite: bool = False,
) -> ScriptResult:
    """Generate the script for a known record, saving it if asked."""
    generated = generate_install_script(record, runtime.settings.scripts)
    result = ScriptResult(record=record, generated=generated)

    if output is not None:
        result.saved = save_script(generated, output, overwrite=overwrite)
        if result.saved.error:
            result.error = result.saved.error
            result.code = "save_failed"
    return result


def build_script(
    runtime: Runtime,
    package_id: str,
    query: str | None = None,
    source: PackageSource | None = None,
    output: Path | None = None,
    overwrite: bool = False,
) -> ScriptResult:
    """Look a package up in the catalogs, then generate its script.

    Args:
        runtime: Wired collaborators.
        package_id: Exact package id (case-insensitive).
        query: Search text, defaults to the id.
        source: Only consider this catalog.
        output: File or directory to save into. None = don't save.
        overwrite: Replace an existing file at the destination.

    Returns:
        ScriptResult with the generated script, or an error.
    """
    session = runtime.new_session()
    selected = search_and_select(session, package_id, query=query, source=source)
    if not selected.ok:
        return ScriptResult(error=selected.error, code=selected.code)

    record = session.snapshot.selected
    assert record is not None  # guaranteed after a successful select
    logger.info("Generating install script for %s (%s)", record.id, record.source.value)
    return script_for_record(runtime, record, output=output, overwrite=overwrite)
