"""
Credential keystore — where the Intune app registration is kept.

The credential gate only talks to the ``Keystore`` interface, so the
storage can be swapped (in-memory for tests and the web API, a local
file for the CLI, an OS keychain later).

FileKeystore format (JSON):

    {
      "version": 1,
      "algorithm": "aes-256-gcm",
      "tenant_id": "...",
      "client_id": "...",
      "iv": "<b64>",
      "ciphertext": "<b64>"          # client secret + GCM tag
    }

The AES key lives in a sibling ``.key`` file created with mode 0600.
Tenant and client ids are bound to the ciphertext as associated data.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from pkgbridge.core.models.deployment import Credentials

logger = logging.getLogger(__name__)

# ── Crypto constants ─────────────────────────────────────────────────
KEY_BYTES = 32
IV_BYTES = 12
FORMAT_VERSION = 1


class KeystoreError(Exception):
    """Raised when credentials cannot be persisted."""


class Keystore(ABC):
    """Persists and retrieves a single Credentials record."""

    @abstractmethod
    def load(self) -> Credentials | None:
        """Return the stored credentials, or None if nothing is stored.

        Must not raise for missing or unreadable storage.
        """

    @abstractmethod
    def save(self, credentials: Credentials) -> None:
        """Persist credentials, replacing any previous record.

        Raises:
            KeystoreError: If the record cannot be written.
        """

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored record, if any."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"


class MemoryKeystore(Keystore):
    """Process-local keystore. Nothing survives the process."""

    def __init__(self, credentials: Credentials | None = None):
        self._credentials = credentials
        self.save_count = 0

    def load(self) -> Credentials | None:
        return self._credentials

    def save(self, credentials: Credentials) -> None:
        self._credentials = credentials.model_copy()
        self.save_count += 1

    def clear(self) -> None:
        self._credentials = None


class FileKeystore(Keystore):
    """Credentials in a JSON file, client secret encrypted at rest."""

    def __init__(self, path: Path):
        self._path = path.expanduser()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def key_path(self) -> Path:
        return self._path.with_suffix(".key")

    # ── Key management ───────────────────────────────────────────

    def _read_key(self) -> bytes | None:
        if not self.key_path.is_file():
            return None
        try:
            key = base64.b64decode(self.key_path.read_text(encoding="ascii").strip())
        except (OSError, ValueError) as e:
            logger.warning("Unreadable keystore key %s: %s", self.key_path, e)
            return None
        return key if len(key) == KEY_BYTES else None

    def _create_key(self) -> bytes:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        key = AESGCM.generate_key(bit_length=KEY_BYTES * 8)
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="ascii") as f:
            f.write(base64.b64encode(key).decode("ascii") + "\n")
        logger.debug("Created keystore key %s", self.key_path)
        return key

    @staticmethod
    def _associated_data(tenant_id: str, client_id: str) -> bytes:
        return f"{tenant_id}:{client_id}".encode("utf-8")

    # ── Keystore interface ───────────────────────────────────────

    def load(self) -> Credentials | None:
        from cryptography.exceptions import InvalidTag
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        if not self._path.is_file():
            logger.debug("No keystore at %s", self._path)
            return None

        key = self._read_key()
        if key is None:
            logger.warning("Keystore %s has no usable key — ignoring it", self._path)
            return None

        try:
            envelope = json.loads(self._path.read_text(encoding="utf-8"))
            tenant_id = envelope["tenant_id"]
            client_id = envelope["client_id"]
            iv = base64.b64decode(envelope["iv"])
            ciphertext = base64.b64decode(envelope["ciphertext"])
            secret = AESGCM(key).decrypt(
                iv, ciphertext, self._associated_data(tenant_id, client_id),
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Corrupt keystore %s: %s", self._path, e)
            return None
        except InvalidTag:
            logger.warning("Keystore %s failed authentication — ignoring it", self._path)
            return None

        return Credentials(
            tenant_id=tenant_id,
            client_id=client_id,
            client_secret=secret.decode("utf-8"),
        )

    def save(self, credentials: Credentials) -> None:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        try:
            key = self._read_key() or self._create_key()
            iv = os.urandom(IV_BYTES)
            ciphertext = AESGCM(key).encrypt(
                iv,
                credentials.client_secret.encode("utf-8"),
                self._associated_data(credentials.tenant_id, credentials.client_id),
            )
            envelope = {
                "version": FORMAT_VERSION,
                "algorithm": "aes-256-gcm",
                "tenant_id": credentials.tenant_id,
                "client_id": credentials.client_id,
                "iv": base64.b64encode(iv).decode("ascii"),
                "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
            }
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_name(self._path.name + ".tmp")
            tmp.write_text(json.dumps(envelope, indent=2) + "\n", encoding="utf-8")
            tmp.replace(self._path)
        except OSError as e:
            raise KeystoreError(f"Cannot write keystore {self._path}: {e}") from e

        logger.info("Credentials saved to %s", self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
        logger.info("Credentials removed from %s", self._path)

    def __repr__(self) -> str:
        return f"<FileKeystore path={str(self._path)!r}>"
