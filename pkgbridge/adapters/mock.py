"""
Mock catalog adapter — canned winget / choco reports for demos and tests.

Used in ``--mock`` mode so the whole workflow can be exercised on a
machine without either package manager. The reports are rendered in
each tool's real console layout, so they go through the same parsers
as live output. Like the real tools, matching happens on the catalog
side: only entries whose name or id contains the query are printed.
"""

from __future__ import annotations

from dataclasses import dataclass

from pkgbridge.adapters.base import Adapter, ExecutionContext
from pkgbridge.core.models.action import Receipt
from pkgbridge.core.models.package import PackageSource


@dataclass(frozen=True)
class CatalogEntry:
    name: str
    id: str
    version: str


DEMO_CATALOG: dict[PackageSource, tuple[CatalogEntry, ...]] = {
    PackageSource.WINGET: (
        CatalogEntry("Adobe Acrobat Reader (64-bit)", "Adobe.Acrobat.Reader.64-bit", "25.01.20787"),
        CatalogEntry("Visual Studio Code", "Microsoft.VisualStudioCode", "1.95.3"),
        CatalogEntry("Google Chrome", "Google.Chrome", "131.0.6778.108"),
    ),
    PackageSource.CHOCOLATEY: (
        CatalogEntry("adobereader", "adobereader", "25.01.20787"),
        CatalogEntry("vscode", "vscode", "1.95.3"),
        CatalogEntry("googlechrome", "googlechrome", "131.0.6778"),
    ),
}


def _matching(entries: tuple[CatalogEntry, ...], query: str) -> list[CatalogEntry]:
    needle = query.lower()
    return [e for e in entries if needle in e.name.lower() or needle in e.id.lower()]


def render_winget_report(entries: list[CatalogEntry]) -> str:
    """Render entries the way ``winget search`` prints them."""
    if not entries:
        return "No package found matching input criteria.\n"

    name_w = max(len("Name"), *(len(e.name) for e in entries)) + 2
    id_w = max(len("Id"), *(len(e.id) for e in entries)) + 2
    ver_w = max(len("Version"), *(len(e.version) for e in entries)) + 2

    header = f"{'Name':<{name_w}}{'Id':<{id_w}}{'Version':<{ver_w}}Source"
    lines = [header, "-" * len(header)]
    for e in entries:
        lines.append(f"{e.name:<{name_w}}{e.id:<{id_w}}{e.version:<{ver_w}}winget")
    return "\n".join(lines) + "\n"


def render_choco_report(entries: list[CatalogEntry]) -> str:
    """Render entries the way ``choco search`` prints them."""
    lines = ["Chocolatey v2.3.0"]
    for e in entries:
        lines.append(f"{e.id} {e.version} [Approved]")
    lines.append(f"{len(entries)} packages found.")
    return "\n".join(lines) + "\n"


_RENDERERS = {
    PackageSource.WINGET: render_winget_report,
    PackageSource.CHOCOLATEY: render_choco_report,
}


class MockCatalogAdapter(Adapter):
    """Serve catalog searches from the built-in demo catalog.

    Failures can be injected per source to exercise error paths.
    """

    def __init__(
        self,
        source: PackageSource,
        catalog: dict[PackageSource, tuple[CatalogEntry, ...]] | None = None,
        available: bool = True,
    ):
        self._source = source
        self._entries = (catalog or DEMO_CATALOG).get(source, ())
        self._available = available
        self._failure: str | None = None
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._source.value

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, error: str | None = "Mock failure") -> None:
        """Make every following search fail with ``error`` (None to clear)."""
        self._failure = error

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        query = context.param("query", "")
        if not isinstance(query, str) or not query.strip():
            return False, "Missing required param: 'query'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if self._failure is not None:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=self._failure,
                metadata={"mock": True},
            )

        entries = _matching(self._entries, context.param("query", "").strip())
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=_RENDERERS[self._source](entries),
            metadata={"mock": True, "matches": len(entries)},
        )
