"""
Deployment history — append-only ledger of rollout attempts.

Every finished attempt (succeeded or failed) appends one line to an
NDJSON file, ``<state_dir>/deployments.ndjson``. Rejections by the
credential gate never start an attempt and are not recorded.

The ledger is append-only: entries are never modified or deleted.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = ".state"
DEFAULT_HISTORY_FILE = "deployments.ndjson"


class DeploymentAuditEntry(BaseModel):
    """A single deployment attempt."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    deployment_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])

    # What was deployed
    package_name: str = ""
    package_id: str = ""
    version: str = ""
    source: str = ""
    target_groups: list[str] = Field(default_factory=list)

    # Results
    status: str = ""               # succeeded, failed
    stages_total: int = 0
    stages_completed: list[str] = Field(default_factory=list)
    failed_stage: str | None = None
    error: str | None = None
    duration_ms: int = 0


class AuditWriter:
    """Append-only deployment history writer."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is not None:
            self._path = path
        elif state_dir is not None:
            self._path = state_dir / DEFAULT_HISTORY_FILE
        else:
            self._path = Path(DEFAULT_STATE_DIR) / DEFAULT_HISTORY_FILE

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: DeploymentAuditEntry) -> None:
        """Append an entry to the ledger.

        A write failure is logged, never raised: history must not turn
        a finished deployment into a failed one.
        """
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
            logger.debug("History entry written: %s (%s)", entry.deployment_id, entry.status)
        except OSError as e:
            logger.error("Failed to write deployment history: %s", e)

    def read_all(self) -> list[DeploymentAuditEntry]:
        """Read every entry, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(DeploymentAuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt history entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read deployment history: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[DeploymentAuditEntry]:
        """Read the most recent N entries, oldest first."""
        if n <= 0:
            return []
        return self.read_all()[-n:]

    def entry_count(self) -> int:
        if not self._path.is_file():
            return 0
        try:
            with self._path.open("r", encoding="utf-8") as f:
                return sum(1 for line in f if line.strip())
        except OSError:
            return 0
