"""
Catalog report parsers — console text in, PackageRecords out.

Neither ``winget search`` nor ``choco search`` emits structured output:
both print column-aligned tables with banners, spinners and summary
lines around them. Parsing is therefore heuristic, and the contract
is determinism of the derivation rules:

    winget      split on runs of 2+ whitespace → name, id, version
                publisher = id before the first '.'
    chocolatey  "<name> <x.y.z> ..." → name, version
                id = lower(name) with whitespace runs → '.'
                publisher = first word of name

Parsers are total: any string (or bytes) input yields a list, possibly
empty. Lines that cannot be decomposed confidently are dropped.
"""

from __future__ import annotations

import logging
import re

from pydantic import ValidationError

from pkgbridge.core.models.package import PackageRecord, PackageSource

logger = logging.getLogger(__name__)


_COLUMN_SPLIT = re.compile(r"\s{2,}")
_DASH_SEPARATOR = re.compile(r"^-{3,}$")
_WHITESPACE = re.compile(r"\s+")

# name, whitespace, three-part version ending at whitespace or end of line
_CHOCO_ROW = re.compile(r"^(.+?)\s+(\d+\.\d+\.\d+)(?=\s|$)")


def _as_text(raw: str | bytes | None) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return ""
    # lone surrogates cannot be validated into model fields
    return raw.encode("utf-8", errors="replace").decode("utf-8")


def _lines(raw: str) -> list[str]:
    """Split a report into lines, dropping carriage-return spinner residue."""
    lines = []
    for line in raw.split("\n"):
        # winget redraws its progress spinner with bare \r; keep the final frame
        if "\r" in line:
            line = line.rstrip("\r").rsplit("\r", 1)[-1]
        lines.append(line.replace("\x00", ""))
    return lines


def _build(**fields: object) -> PackageRecord | None:
    """Create a record, or None if the fields do not validate."""
    try:
        return PackageRecord(description=f"Package {fields['name']}", **fields)
    except ValidationError as e:
        logger.debug("Dropping unparseable row %r: %s", fields.get("name"), e)
        return None


# ═══════════════════════════════════════════════════════════════════
#  winget
# ═══════════════════════════════════════════════════════════════════


def _is_winget_header(fields: list[str]) -> bool:
    return len(fields) >= 2 and fields[0] == "Name" and fields[1] == "Id"


def _winget_publisher(package_id: str) -> str | None:
    if "." not in package_id:
        return None
    prefix = package_id.split(".", 1)[0]
    return prefix or None


def parse_winget_output(raw: str | bytes | None) -> list[PackageRecord]:
    """Parse ``winget search`` output.

    If the report contains a dashed separator line, everything up to
    it (banner, column header) is skipped. Without one, every line is
    a candidate and header rows are recognised by their column names.

    Args:
        raw: Console text as captured from winget.

    Returns:
        Records in report order.
    """
    lines = [line.strip() for line in _lines(_as_text(raw))]

    start = 0
    for index, line in enumerate(lines):
        if _DASH_SEPARATOR.match(line):
            start = index + 1
            break

    records: list[PackageRecord] = []
    for line in lines[start:]:
        if not line or _DASH_SEPARATOR.match(line):
            continue

        fields = _COLUMN_SPLIT.split(line)
        if len(fields) < 3 or _is_winget_header(fields):
            continue

        name, package_id, version = (f.strip() for f in fields[:3])
        if not name or not package_id or not version:
            continue
        if _WHITESPACE.search(package_id):
            continue

        record = _build(
            name=name,
            id=package_id,
            version=version,
            source=PackageSource.WINGET,
            publisher=_winget_publisher(package_id),
        )
        if record is not None:
            records.append(record)

    logger.debug("Parsed %d winget record(s)", len(records))
    return records


# ═══════════════════════════════════════════════════════════════════
#  chocolatey
# ═══════════════════════════════════════════════════════════════════


def _is_choco_banner(line: str) -> bool:
    return line.startswith("Chocolatey") or "packages found" in line


def choco_id_for(name: str) -> str:
    """Derive a chocolatey id from a display name (``VS Code`` → ``vs.code``)."""
    return _WHITESPACE.sub(".", name.strip().lower())


def parse_choco_output(raw: str | bytes | None) -> list[PackageRecord]:
    """Parse ``choco search`` output.

    Args:
        raw: Console text as captured from choco.

    Returns:
        Records in report order.
    """
    records: list[PackageRecord] = []
    for line in _lines(_as_text(raw)):
        line = line.strip()
        if not line or _is_choco_banner(line):
            continue

        match = _CHOCO_ROW.match(line)
        if match is None:
            continue

        name = match.group(1).strip()
        version = match.group(2)
        if not name:
            continue

        record = _build(
            name=name,
            id=choco_id_for(name),
            version=version,
            source=PackageSource.CHOCOLATEY,
            publisher=name.split()[0],
        )
        if record is not None:
            records.append(record)

    logger.debug("Parsed %d chocolatey record(s)", len(records))
    return records


_PARSERS = {
    PackageSource.WINGET: parse_winget_output,
    PackageSource.CHOCOLATEY: parse_choco_output,
}


def parse_output(source: PackageSource, raw: str | bytes | None) -> list[PackageRecord]:
    """Parse a report from the given source."""
    return _PARSERS[source](raw)
