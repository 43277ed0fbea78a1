"""
Package model — one normalized catalog entry.

Both catalogs (winget and chocolatey) are parsed into the same record
shape. A record is identified by its (source, id) pair: the same
application may appear once per source with different ids, and both
entries are kept.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class PackageSource(str, Enum):
    """The package catalogs we know how to query."""

    WINGET = "winget"            # primary
    CHOCOLATEY = "chocolatey"    # secondary

    @property
    def is_primary(self) -> bool:
        return self is PackageSource.WINGET

    @classmethod
    def parse(cls, value: str) -> PackageSource:
        """Resolve a source name, accepting the short 'choco' alias."""
        normalized = value.strip().lower()
        if normalized == "choco":
            normalized = cls.CHOCOLATEY.value
        return cls(normalized)


# Primary first: this is also the merge order.
SOURCE_ORDER: tuple[PackageSource, ...] = (PackageSource.WINGET, PackageSource.CHOCOLATEY)


class PackageRecord(BaseModel):
    """A single package as reported by one catalog.

    ``description`` is synthesized by the parsers because neither
    search report carries one. ``publisher`` is derived heuristically
    and may be missing.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    id: str
    version: str                 # free-form, not assumed semver
    source: PackageSource
    description: str = ""
    publisher: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """The (source, id) identity of this record."""
        return (self.source.value, self.id)

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name or id."""
        needle = query.lower()
        return needle in self.name.lower() or needle in self.id.lower()
