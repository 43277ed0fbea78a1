"""
Catalog search — query both package catalogs and merge the results.

The two catalog commands are independent, so they run concurrently;
the merge waits for both (a join, not a race). Ordering is fixed:
every winget record precedes every chocolatey record, and each list
keeps its parser's emission order. Nothing is deduplicated: the same
application may legitimately appear once per source.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from pkgbridge.core.models.action import Receipt
from pkgbridge.core.models.package import SOURCE_ORDER, PackageRecord, PackageSource
from pkgbridge.core.services.parsers import parse_output

logger = logging.getLogger(__name__)

# (source, query, timeout) → Receipt whose output is the raw report
Invoker = Callable[[PackageSource, str, int], Receipt]

DEFAULT_TIMEOUT = 30


def filter_records(
    records: Iterable[PackageRecord],
    query: str | None,
) -> list[PackageRecord]:
    """Keep records whose name or id contains the query (case-insensitive)."""
    if not query:
        return list(records)
    return [r for r in records if r.matches(query)]


def merge(
    primary: Sequence[PackageRecord],
    secondary: Sequence[PackageRecord],
    query: str | None = None,
) -> list[PackageRecord]:
    """Merge winget and chocolatey results, primary first.

    Args:
        primary: Records from the primary source, in parser order.
        secondary: Records from the secondary source, in parser order.
        query: Optional filter applied identically to both lists.

    Returns:
        ``filter(primary) + filter(secondary)``.
    """
    return filter_records(primary, query) + filter_records(secondary, query)


@dataclass
class SearchOutcome:
    """Result of a catalog search across one or more sources."""

    query: str = ""
    sources: list[PackageSource] = field(default_factory=list)
    results: list[PackageRecord] = field(default_factory=list)
    error: str | None = None
    counts: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        if self.error:
            return {"query": self.query, "error": self.error, "results": []}
        return {
            "query": self.query,
            "sources": [s.value for s in self.sources],
            "counts": self.counts,
            "total": len(self.results),
            "results": [r.model_dump(mode="json") for r in self.results],
        }


def _ordered(sources: Iterable[PackageSource]) -> list[PackageSource]:
    wanted = set(sources)
    return [s for s in SOURCE_ORDER if s in wanted]


def search_catalogs(
    query: str,
    invoker: Invoker,
    sources: Iterable[PackageSource] = SOURCE_ORDER,
    timeout: int = DEFAULT_TIMEOUT,
    apply_filter: bool = False,
) -> SearchOutcome:
    """Search the selected catalogs and merge the parsed results.

    Any invocation failure fails the whole search: the outcome carries
    the error and no results, never a partial list.

    Args:
        query: Free-text package name. Must not be blank.
        invoker: Runs one catalog command and returns its receipt.
        sources: Which catalogs to query.
        timeout: Per-command timeout in seconds.
        apply_filter: Also apply the local name/id substring filter.

    Returns:
        SearchOutcome with merged results, or an error.
    """
    query = (query or "").strip()
    selected = _ordered(sources)
    outcome = SearchOutcome(query=query, sources=selected)

    if not query:
        outcome.error = "Search query must not be empty"
        return outcome
    if not selected:
        outcome.error = "No package source selected"
        return outcome

    logger.info("Searching %s for %r", ", ".join(s.value for s in selected), query)

    with ThreadPoolExecutor(max_workers=len(selected)) as pool:
        futures = {
            source: pool.submit(invoker, source, query, timeout)
            for source in selected
        }
        receipts: dict[PackageSource, Receipt] = {}
        for source, future in futures.items():
            try:
                receipts[source] = future.result()
            except Exception as e:
                receipts[source] = Receipt.failure(
                    adapter=source.value,
                    action_id=f"search:{source.value}",
                    error=f"Unexpected error: {e}",
                )

    errors = [
        f"{source.value}: {receipt.error or 'search failed'}"
        for source, receipt in receipts.items()
        if not receipt.ok
    ]
    if errors:
        outcome.error = "; ".join(errors)
        logger.warning("Catalog search failed: %s", outcome.error)
        return outcome

    parsed = {
        source: parse_output(source, receipts[source].output)
        for source in selected
    }
    outcome.counts = {source.value: len(records) for source, records in parsed.items()}
    outcome.results = merge(
        parsed.get(PackageSource.WINGET, []),
        parsed.get(PackageSource.CHOCOLATEY, []),
        query=query if apply_filter else None,
    )
    logger.info("Found %d package(s) for %r", len(outcome.results), query)
    return outcome
