"""
Generated file model — output of the script generators.
"""

from __future__ import annotations

from pydantic import BaseModel


class GeneratedFile(BaseModel):
    """A script produced for a selected package.

    Attributes:
        path:      Suggested filename (e.g. ``Google.Chrome_install.ps1``).
        content:   Full script text.
        overwrite: Whether saving may replace an existing file.
        reason:    Why this file was generated.
    """

    path: str
    content: str
    overwrite: bool = False
    reason: str = ""
