"""
Catalog search adapter — run ``winget search`` / ``choco search``.

The command is executed without a shell (the query is passed as a
single argument, never interpolated) and its stdout is returned raw
in the receipt. Parsing is the parsers' job, not the adapter's.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from pkgbridge.adapters.base import Adapter, ExecutionContext
from pkgbridge.core.models.action import Receipt
from pkgbridge.core.models.package import PackageSource

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLES = {
    PackageSource.WINGET: "winget",
    PackageSource.CHOCOLATEY: "choco",
}

# winget exits with APPINSTALLER_CLI_ERROR_NO_APPLICATIONS_FOUND when nothing matches
_NO_MATCH_CODES = {
    PackageSource.WINGET: {0x8A150014, 0x8A150014 - (1 << 32)},
}


def search_command(source: PackageSource, query: str, executable: str | None = None) -> list[str]:
    """Build the argv for a catalog search."""
    exe = executable or DEFAULT_EXECUTABLES[source]
    if source is PackageSource.WINGET:
        return [exe, "search", "--name", query, "--accept-source-agreements"]
    return [exe, "search", query]


class CatalogSearchAdapter(Adapter):
    """Search one package catalog through its command-line tool.

    Action params:
        query (str): Package name to search for.
        timeout (int): Timeout in seconds (default: 30).
    """

    def __init__(self, source: PackageSource, executable: str | None = None):
        self._source = source
        self._executable = executable or DEFAULT_EXECUTABLES[source]

    @property
    def name(self) -> str:
        return self._source.value

    @property
    def source(self) -> PackageSource:
        return self._source

    def is_available(self) -> bool:
        return shutil.which(self._executable) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        query = context.param("query", "")
        if not isinstance(query, str) or not query.strip():
            return False, "Missing required param: 'query'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        query = context.param("query", "").strip()
        timeout = context.param("timeout", 30)
        command = search_command(self._source, query, self._executable)

        logger.debug("Executing: %s", " ".join(command))
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{self._executable} search timed out after {timeout}s",
                metadata={"command": command, "timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{self._executable} is not installed or not on PATH",
                metadata={"command": command},
            )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stderr = (result.stderr or "").strip()

        if result.returncode in _NO_MATCH_CODES.get(self._source, ()):
            logger.debug("%s reported no match for %r", self._executable, query)
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output="",
                duration_ms=elapsed_ms,
                metadata={"command": command, "return_code": result.returncode},
            )

        if result.returncode != 0:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=stderr or f"{self._executable} exited with code {result.returncode}",
                duration_ms=elapsed_ms,
                metadata={
                    "command": command,
                    "return_code": result.returncode,
                    "stdout": result.stdout or "",
                },
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=result.stdout or "",
            duration_ms=elapsed_ms,
            metadata={
                "command": command,
                "return_code": result.returncode,
                "stderr": stderr,
            },
        )
