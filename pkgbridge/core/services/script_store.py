"""
Script store — persist a generated script chosen by the operator.

The generator produces text; this module is the only place that
writes it. An existing file is left alone unless overwrite is
requested, and that case is reported as a cancellation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pkgbridge.core.models.template import GeneratedFile

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of saving a script."""

    path: Path | None = None
    cancelled: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.path is not None and self.error is None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "path": str(self.path) if self.path else None,
            "cancelled": self.cancelled,
            "error": self.error,
        }


def save_script(
    generated: GeneratedFile,
    target: Path,
    overwrite: bool | None = None,
) -> SaveResult:
    """Write a generated script.

    Args:
        generated: Script produced by a generator.
        target: Destination file, or a directory to place
            ``generated.path`` into.
        overwrite: Replace an existing file. Defaults to
            ``generated.overwrite``.

    Returns:
        SaveResult with the final path, a cancellation, or an error.
    """
    if overwrite is None:
        overwrite = generated.overwrite

    if not generated.content:
        return SaveResult(error="Nothing to save: script is empty")

    path = target / generated.path if target.is_dir() else target

    if path.exists() and not overwrite:
        logger.info("Not overwriting existing script %s", path)
        return SaveResult(cancelled=True)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(generated.content, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to save script to %s: %s", path, e)
        return SaveResult(error=f"Cannot write {path}: {e}")

    logger.info("Saved script: %s", path)
    return SaveResult(path=path)
