"""
TOTPVault - Vault Module (store facade)

This file handles:
- Picking the entry backend (plain file or sealed directory) from config
- Validating command arguments (identifier first, then secret)
- Running init/list/save/read/update/delete/compute against the backend
- Turning results into the strings the CLI prints

Data flow for compute:
    backend.read(id) -> codec.decode(secret) -> totp.compute(key, step) -> "Current TOTP ..."

Errors are never caught here; they reach the caller as VaultError subclasses.
"""

import logging
from typing import List, Optional, Protocol

from . import codec, totp
from .config import BACKEND_PLAIN, VaultConfig
from .entry import check_identifier
from .errors import ValidationError, empty_secret, missing_identifier, not_found
from .plain import PlainStore
from .sealed import SealedStore
from .sealer import GpgSealer, Sealer


logger = logging.getLogger(__name__)


# =============================================================================
# COMMANDS
# =============================================================================

COMMAND_INIT = "init"
COMMAND_LIST = "list"
COMMAND_SAVE = "save"
COMMAND_READ = "read"
COMMAND_UPDATE = "update"
COMMAND_DELETE = "delete"
COMMAND_COMPUTE = "compute"

COMMANDS = (
    COMMAND_INIT,
    COMMAND_LIST,
    COMMAND_SAVE,
    COMMAND_READ,
    COMMAND_UPDATE,
    COMMAND_DELETE,
    COMMAND_COMPUTE,
)

ALIASES = {command[0]: command for command in COMMANDS}


def resolve_command(name: Optional[str]) -> str:
    """Full command name for a name or one-letter alias (default: compute)."""
    if not name:
        return COMMAND_COMPUTE
    command = ALIASES.get(name, name)
    if command not in COMMANDS:
        raise ValidationError(f"Error: unknown command \"{name}\"", operation=name)
    return command


# =============================================================================
# BACKEND CAPABILITY
# =============================================================================

class EntryBackend(Protocol):
    """What the facade needs from a store. PlainStore and SealedStore both fit."""

    def init(self, recipient: Optional[str]) -> None: ...
    def list(self) -> List[str]: ...
    def exists(self, identifier: str) -> bool: ...
    def read(self, identifier: str) -> Optional[str]: ...
    def write(self, identifier: str, secret: str) -> None: ...
    def update(self, identifier: str, new_secret: str) -> None: ...
    def delete(self, identifier: str) -> None: ...


def open_backend(config: VaultConfig, sealer: Optional[Sealer] = None) -> EntryBackend:
    if config.backend == BACKEND_PLAIN:
        return PlainStore.from_config(config)
    return SealedStore(config, sealer or GpgSealer.from_config(config))


def normalize_secret(secret: Optional[str]) -> str:
    """Secrets arrive as typed: trim, drop inner spaces, upper-case."""
    if secret is None:
        return ""
    return "".join(secret.split()).upper()


# =============================================================================
# VAULT CLASS
# =============================================================================

class Vault:
    """
    Uniform command surface over either backend.

    Usage:
        vault = Vault(VaultConfig.from_env())
        vault.init("Test Man")
        vault.save("github", "JBSWY3DPEHPK3PXP")
        vault.compute("github")     # "Current TOTP for github is 123456"
    """

    def __init__(
        self,
        config: VaultConfig,
        backend: Optional[EntryBackend] = None,
        sealer: Optional[Sealer] = None,
    ):
        self.config = config
        self.backend = backend or open_backend(config, sealer)

    def run(
        self,
        command: Optional[str],
        identifier: Optional[str] = None,
        secret: Optional[str] = None,
        now: Optional[float] = None,
    ) -> str:
        """Dispatch one command by name or alias."""
        command = resolve_command(command)
        logger.debug("Running command %s (backend %s)", command, self.config.backend)
        if command == COMMAND_INIT:
            return self.init(identifier)
        if command == COMMAND_LIST:
            return self.list()
        if command == COMMAND_SAVE:
            return self.save(identifier, secret)
        if command == COMMAND_READ:
            return self.read(identifier)
        if command == COMMAND_UPDATE:
            return self.update(identifier, secret)
        if command == COMMAND_DELETE:
            return self.delete(identifier)
        return self.compute(identifier, now)

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def init(self, recipient: Optional[str] = None) -> str:
        if self.config.backend == BACKEND_PLAIN:
            self.backend.init(recipient)
            return f"Initialized key file {self.config.plain_path}."
        if not recipient or not recipient.strip():
            raise missing_identifier(COMMAND_INIT)
        self.backend.init(recipient)
        return f"Initialized vault at {self.config.vault_dir} for {recipient.strip()}."

    def identifiers(self) -> List[str]:
        return self.backend.list()

    def list(self) -> str:
        identifiers = self.identifiers()
        if not identifiers:
            return "No entries."
        return "\n".join(identifiers)

    def prepare(self, command: str, identifier: Optional[str]) -> str:
        """
        Check the target of save/update before a secret is asked for:
        save needs a new identifier, update an existing one.
        """
        identifier = self._identifier(identifier, command)
        exists = self.backend.exists(identifier)
        if command == COMMAND_SAVE and exists:
            raise self._duplicate(identifier)
        if command == COMMAND_UPDATE and not exists:
            raise not_found(command, identifier)
        return identifier

    def save(self, identifier: Optional[str], secret: Optional[str]) -> str:
        identifier = self._identifier(identifier, COMMAND_SAVE)
        secret = self._secret(secret, identifier, COMMAND_SAVE)
        if self.backend.exists(identifier):
            raise self._duplicate(identifier)
        self.backend.write(identifier, secret)
        return f"Key for identifier {identifier} saved."

    def secret(self, identifier: Optional[str]) -> Optional[str]:
        """Stored Base32 text, or None when the identifier is unknown."""
        identifier = self._identifier(identifier, COMMAND_READ)
        return self.backend.read(identifier)

    def read(self, identifier: Optional[str]) -> str:
        identifier = self._identifier(identifier, COMMAND_READ)
        secret = self.backend.read(identifier)
        if secret is None:
            return f"No entry found for identifier {identifier}"
        return f"Key for identifier {identifier} is {secret}"

    def update(self, identifier: Optional[str], secret: Optional[str]) -> str:
        identifier = self._identifier(identifier, COMMAND_UPDATE)
        secret = self._secret(secret, identifier, COMMAND_UPDATE)
        self.backend.update(identifier, secret)
        return f"Key for identifier {identifier} updated."

    def delete(self, identifier: Optional[str]) -> str:
        identifier = self._identifier(identifier, COMMAND_DELETE)
        self.backend.delete(identifier)
        return f"Key for identifier {identifier} deleted."

    def code(self, identifier: Optional[str], now: Optional[float] = None) -> str:
        """Current TOTP code for an identifier."""
        identifier = self._identifier(identifier, COMMAND_COMPUTE)
        secret = self.backend.read(identifier)
        if secret is None:
            raise not_found(COMMAND_COMPUTE, identifier)
        key = codec.decode(codec.canonicalize(secret))
        step = totp.time_step(now, self.config.time_step_seconds)
        return totp.compute(key, step, self.config.digits)

    def compute(self, identifier: Optional[str], now: Optional[float] = None) -> str:
        identifier = self._identifier(identifier, COMMAND_COMPUTE)
        return f"Current TOTP for {identifier} is {self.code(identifier, now)}"

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _identifier(self, identifier: Optional[str], command: str) -> str:
        if not identifier:
            raise missing_identifier(command)
        return check_identifier(identifier, self.config.delimiter, command)

    @staticmethod
    def _duplicate(identifier: str) -> ValidationError:
        return ValidationError(
            f"Error: identifier {identifier} already exists",
            operation=COMMAND_SAVE,
            identifier=identifier,
        )

    @staticmethod
    def _secret(secret: Optional[str], identifier: str, command: str) -> str:
        """Normalize and validate a typed secret; returns the canonical text."""
        # Padding alone ("====") counts as empty
        secret = codec.canonicalize(normalize_secret(secret))
        if not secret:
            raise empty_secret(command, identifier)
        codec.decode(secret)
        return secret
