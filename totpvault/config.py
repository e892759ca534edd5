"""
TOTPVault - Configuration

All named values the stores need (delimiter, extension, fixed file names,
TOTP parameters) live in one immutable VaultConfig. Components receive it at
construction time, so tests can point everything at a temporary directory.

Environment overrides:
    TOTPVAULT_BACKEND   plain | sealed
    TOTPVAULT_DIR       sealed store directory
    TOTPVAULT_FILE      plain store file
    TOTPVAULT_GPG       encryption binary
    GNUPGHOME           encryption service home directory
"""

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .errors import ValidationError


BACKEND_PLAIN = "plain"
BACKEND_SEALED = "sealed"
BACKENDS = (BACKEND_PLAIN, BACKEND_SEALED)

DEFAULT_VAULT_DIR = os.path.join(os.path.expanduser("~"), ".totpvault")
DEFAULT_PLAIN_FILE_NAME = "keys.txt"
DEFAULT_GPG_HOME = os.path.join(os.path.expanduser("~"), ".gnupg")


@dataclass(frozen=True)
class VaultConfig:
    backend: str = BACKEND_SEALED
    vault_dir: str = DEFAULT_VAULT_DIR
    plain_file: Optional[str] = None
    gpg_home: str = DEFAULT_GPG_HOME
    gpg_command: str = "gpg"

    delimiter: str = " "
    sealed_extension: str = "gpg"
    anchor_name: str = ".gpg-id"

    time_step_seconds: int = 30
    digits: int = 6

    def __post_init__(self):
        if self.backend not in BACKENDS:
            raise ValidationError(
                f"Error: unknown store backend \"{self.backend}\" "
                f"(expected one of: {', '.join(BACKENDS)})",
                operation="config",
            )
        if len(self.delimiter) != 1:
            raise ValidationError(
                "Error: plain store delimiter must be a single character",
                operation="config",
            )

    @property
    def plain_path(self) -> str:
        """Path of the plain key file (defaults to a file inside vault_dir)."""
        return self.plain_file or os.path.join(self.vault_dir, DEFAULT_PLAIN_FILE_NAME)

    @property
    def anchor_path(self) -> str:
        return os.path.join(self.vault_dir, self.anchor_name)

    def with_overrides(self, **overrides) -> "VaultConfig":
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return self
        return replace(self, **values)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "VaultConfig":
        env = os.environ if environ is None else environ
        base = cls()
        return base.with_overrides(
            backend=env.get("TOTPVAULT_BACKEND") or None,
            vault_dir=env.get("TOTPVAULT_DIR") or None,
            plain_file=env.get("TOTPVAULT_FILE") or None,
            gpg_home=env.get("GNUPGHOME") or None,
            gpg_command=env.get("TOTPVAULT_GPG") or None,
        )
