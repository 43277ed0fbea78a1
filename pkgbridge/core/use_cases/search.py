"""
Search use case — find packages across the configured catalogs.
"""

from __future__ import annotations

from collections.abc import Iterable

from pkgbridge.core.models.package import PackageSource
from pkgbridge.core.services.catalog import SearchOutcome, search_catalogs
from pkgbridge.core.services.session import SessionResult, WorkflowSession
from pkgbridge.core.use_cases.runtime import Runtime


def search_packages(
    runtime: Runtime,
    query: str,
    sources: Iterable[PackageSource] | None = None,
    apply_filter: bool = False,
) -> SearchOutcome:
    """Search the catalogs with the runtime's adapters and settings.

    Args:
        runtime: Wired collaborators.
        query: Package name to look for.
        sources: Restrict to these catalogs (default: from settings).
        apply_filter: Drop rows whose name and id do not contain the query.

    Returns:
        SearchOutcome with merged results (winget first) or an error.
    """
    return search_catalogs(
        query,
        runtime.registry.invoke_search,
        sources=sources if sources is not None else runtime.settings.search.sources,
        timeout=runtime.settings.search.timeout,
        apply_filter=apply_filter,
    )


def search_and_select(
    session: WorkflowSession,
    package_id: str,
    query: str | None = None,
    source: PackageSource | None = None,
) -> SessionResult:
    """Search for a package and select the result with the given id.

    The id doubles as the query when none is given: both catalogs
    match ids as well as names.
    """
    query = (query or package_id or "").strip()
    sources = [source] if source is not None else None

    result = session.search(query, sources=sources)
    if not result.ok:
        return result

    record = session.find(package_id, source)
    if record is None:
        where = f" in {source.value}" if source else ""
        return SessionResult.fail(
            f"Package '{package_id}' not found{where} for query '{query}'",
            code="not_found",
        )
    return session.select(record)
