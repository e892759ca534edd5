"""
TOTPVault - Encryption Service

The sealed store never encrypts anything itself. It hands plaintext to a
Sealer addressed to the vault's recipient identity and stores whatever
ciphertext comes back.

GpgSealer drives the `gpg` binary:
- seal: plaintext on stdin -> ciphertext on stdout
- open: ciphertext on stdin -> plaintext on stdout
Anything gpg prints on stderr is logged; only a non-zero exit status fails.
"""

import logging
import subprocess
from typing import List, Protocol

from .config import VaultConfig
from .errors import ExternalServiceError


logger = logging.getLogger(__name__)


class Sealer(Protocol):
    def seal(self, recipient: str, plaintext: bytes) -> bytes:
        ...

    def open(self, recipient: str, ciphertext: bytes) -> bytes:
        ...


class GpgSealer:
    """Encrypt/decrypt through a GnuPG subprocess."""

    def __init__(self, command: str = "gpg", home: str = None):
        self.command = command
        self.home = home

    @classmethod
    def from_config(cls, config: VaultConfig) -> "GpgSealer":
        return cls(config.gpg_command, config.gpg_home)

    def seal(self, recipient: str, plaintext: bytes) -> bytes:
        args = self._base_args() + ["--yes", "--encrypt", "--recipient", recipient]
        return self._run(args, plaintext, "encrypt")

    def open(self, recipient: str, ciphertext: bytes) -> bytes:
        args = self._base_args() + ["--recipient", recipient, "--decrypt"]
        return self._run(args, ciphertext, "decrypt")

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _base_args(self) -> List[str]:
        args = [self.command]
        if self.home:
            args += ["--homedir", self.home]
        return args + ["--batch", "--quiet"]

    def _run(self, args: List[str], data: bytes, action: str) -> bytes:
        logger.debug("Running %s", " ".join(args))
        try:
            result = subprocess.run(
                args, input=data, stdout=subprocess.PIPE, stderr=subprocess.PIPE
            )
        except OSError as e:
            raise ExternalServiceError(
                f"Error running encryption command {self.command} - {e}",
                operation=action,
                cause=e,
            ) from e

        if result.stderr:
            logger.warning(
                "%s %s: %s",
                self.command,
                action,
                result.stderr.decode("utf-8", errors="replace").strip(),
            )
        if result.returncode != 0:
            raise ExternalServiceError(
                f"Error: {self.command} failed to {action} (exit status {result.returncode})",
                operation=action,
            )
        return result.stdout
