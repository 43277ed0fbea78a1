"""
Credential gate — deployment is blocked until credentials are on file.

The gate is plain boolean state over a keystore: it never checks the
credentials against Microsoft Graph. ``set`` is the only mutation and
is only ever called from an explicit operator action.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from pkgbridge.core.models.deployment import Credentials
from pkgbridge.core.persistence.keystore import Keystore, KeystoreError

logger = logging.getLogger(__name__)

_FIELD_LABELS = {
    "tenant_id": "Tenant ID",
    "client_id": "Client ID",
    "client_secret": "Client secret",
}


@dataclass
class GateResult:
    """Outcome of ``CredentialGate.set``."""

    ok: bool = False
    error: str | None = None
    missing: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "error": self.error, "missing": self.missing}


class CredentialGate:
    """Holds the enterprise credentials required before deploying.

    Credentials already in the keystore are picked up at construction,
    so a gate opened in an earlier session stays open.
    """

    def __init__(self, keystore: Keystore):
        self._keystore = keystore
        self._credentials: Credentials | None = None

        stored = keystore.load()
        if stored is not None and stored.is_complete:
            self._credentials = stored
            logger.debug("Credential gate opened from %r", keystore)

    @property
    def credentials(self) -> Credentials | None:
        """The credentials on file (read-only copy), or None."""
        if self._credentials is None:
            return None
        return self._credentials.model_copy()

    def is_ready(self) -> bool:
        return self._credentials is not None

    def set(self, credentials: Credentials) -> GateResult:
        """Validate, persist and adopt new credentials.

        Any empty field rejects the call: nothing is persisted and the
        previous credentials (if any) stay in place.
        """
        missing = credentials.missing_fields()
        if missing:
            labels = ", ".join(_FIELD_LABELS[name] for name in missing)
            return GateResult(
                error=f"All credential fields are required (missing: {labels})",
                missing=missing,
            )

        try:
            self._keystore.save(credentials)
        except KeystoreError as e:
            logger.error("Credential gate could not persist credentials: %s", e)
            return GateResult(error=str(e))

        self._credentials = credentials.model_copy()
        logger.info("Credential gate ready (tenant=%s)", credentials.tenant_id)
        return GateResult(ok=True)

    def clear(self) -> None:
        """Forget the credentials and close the gate."""
        self._keystore.clear()
        self._credentials = None

    def status(self) -> dict:
        creds = self._credentials
        return {
            "ready": self.is_ready(),
            "tenant_id": creds.tenant_id if creds else None,
            "client_id": creds.client_id if creds else None,
        }
