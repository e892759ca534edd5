"""
TOTPVault - Sealed Entry Store

A directory with one encrypted file per identifier plus a trust anchor:

    <vault_dir>/
        .gpg-id          recipient identity, written once by init()
        github.gpg       ciphertext of the Base32 secret
        mail.gpg

Every entry is encrypted to the recipient recorded in the anchor. The
anchor must be non-empty before any entry can be written, and init()
refuses to replace a non-empty anchor.
"""

import logging
import os
import tempfile
from typing import List, Optional

from .config import VaultConfig
from .entry import check_identifier
from .errors import ExternalServiceError, StorageError, ValidationError, not_found
from .sealer import Sealer


logger = logging.getLogger(__name__)


class SealedStore:
    """
    Usage:
        store = SealedStore(config, GpgSealer.from_config(config))
        store.init("Test Man")
        store.write("github", "JBSWY3DPEHPK3PXP")
        store.read("github")    # "JBSWY3DPEHPK3PXP"
    """

    def __init__(self, config: VaultConfig, sealer: Sealer):
        self.config = config
        self.sealer = sealer
        self.directory = config.vault_dir
        self.extension = "." + config.sealed_extension

    # =========================================================================
    # TRUST ANCHOR
    # =========================================================================

    def init(self, recipient: str) -> None:
        """Record the recipient identity; refuses if one is already recorded."""
        recipient = recipient.strip()
        if not recipient:
            raise ValidationError("Error: recipient identity must not be empty", operation="init")

        anchor = self.config.anchor_path
        existing = self._read_anchor_text() if os.path.isfile(anchor) else ""
        if existing:
            raise ValidationError(
                f"Error initializing - existing gpg id found: {existing}\n"
                f"Delete existing id first to re-initialize: rm {anchor}",
                operation="init",
            )

        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(anchor, "w", encoding="utf-8") as f:
                f.write(recipient)
        except OSError as e:
            raise StorageError(
                f"Error writing gpg id file - {e}", operation="init", cause=e
            ) from e
        logger.info("Initialized vault %s for %s", self.directory, recipient)

    def recipient(self) -> str:
        """The recorded recipient; fails if the vault was never initialized."""
        recipient = self._read_anchor_text(missing_ok=False)
        if not recipient:
            raise StorageError(
                f"Error reading gpg id - {self.config.anchor_path} is empty, run init first",
                operation="read",
            )
        return recipient

    # =========================================================================
    # ENTRIES
    # =========================================================================

    def list(self) -> List[str]:
        try:
            names = os.listdir(self.directory)
        except OSError as e:
            raise StorageError(
                f"Error reading dir {self.directory} - {e}", operation="list", cause=e
            ) from e
        identifiers = {
            name[: -len(self.extension)]
            for name in names
            if name.endswith(self.extension)
            and len(name) > len(self.extension)
            and os.path.isfile(os.path.join(self.directory, name))
        }
        return sorted(identifiers)

    def exists(self, identifier: str) -> bool:
        return os.path.isfile(self._path(identifier, "read"))

    def write(self, identifier: str, secret: str) -> None:
        """Encrypt `secret` to the recorded recipient and store it."""
        path = self._path(identifier, "save")
        recipient = self.recipient()
        ciphertext = self.sealer.seal(recipient, secret.encode("utf-8"))
        if not ciphertext:
            raise ExternalServiceError(
                "Error writing encrypted key to file - encryption produced no output",
                operation="save",
                identifier=identifier,
            )

        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(ciphertext)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(
                f"Error writing encrypted key to file - {e}",
                operation="save",
                identifier=identifier,
                cause=e,
            ) from e
        logger.info("Saved encrypted key for identifier %s", identifier)

    def read(self, identifier: str) -> Optional[str]:
        """Decrypted secret, or None when there is no entry."""
        path = self._path(identifier, "read")
        if not os.path.isfile(path):
            return None
        recipient = self.recipient()
        try:
            with open(path, "rb") as f:
                ciphertext = f.read()
        except OSError as e:
            raise StorageError(
                f"Error reading encrypted key from file - {e}",
                operation="read",
                identifier=identifier,
                cause=e,
            ) from e

        plaintext = self.sealer.open(recipient, ciphertext)
        try:
            secret = plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise StorageError(
                f"Error reading decrypted key from file - {e}",
                operation="read",
                identifier=identifier,
                cause=e,
            ) from e
        logger.debug("Decrypted key for identifier %s", identifier)
        return secret

    def update(self, identifier: str, new_secret: str) -> None:
        raise ValidationError(
            "Error: command update is not supported by the sealed store",
            operation="update",
            identifier=identifier,
        )

    def delete(self, identifier: str) -> None:
        path = self._path(identifier, "delete")
        if not os.path.isfile(path):
            raise not_found("delete", identifier)
        try:
            os.remove(path)
        except OSError as e:
            raise StorageError(
                f"Error deleting key - {e}",
                operation="delete",
                identifier=identifier,
                cause=e,
            ) from e
        logger.info("Deleted encrypted key for identifier %s", identifier)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _path(self, identifier: str, operation: str) -> str:
        check_identifier(identifier, self.config.delimiter, operation)
        return os.path.join(self.directory, identifier + self.extension)

    def _read_anchor_text(self, missing_ok: bool = True) -> str:
        try:
            with open(self.config.anchor_path, "r", encoding="utf-8") as f:
                return f.read().strip()
        except FileNotFoundError as e:
            if missing_ok:
                return ""
            raise StorageError(
                f"Error reading gpg id - vault not initialized ({self.config.anchor_path} missing)",
                operation="read",
                cause=e,
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(
                f"Error reading gpg id file - {e}", operation="read", cause=e
            ) from e
