"""
TOTPVault - Error Types

Every failure surfaces as one of the exception classes below. Each carries:
- kind: closed ErrorKind value (for programmatic handling)
- operation: what was being done ("save", "read", ...)
- identifier: the entry involved, if any
- cause: the underlying exception, if any (also chained via __cause__)

str(error) is the text shown to the user on stderr.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    VALIDATION = "validation"
    DECODE = "decode"
    COMPUTE = "compute"
    STORAGE = "storage"
    EXTERNAL_SERVICE = "external_service"


class VaultError(Exception):
    """Base class for all vault failures."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        identifier: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.identifier = identifier
        self.cause = cause

    def __str__(self) -> str:
        return self.message


class ValidationError(VaultError):
    """Bad input: missing identifier, empty secret, duplicates, absent entries."""
    kind = ErrorKind.VALIDATION


class DecodeError(VaultError):
    """Secret text is not valid Base32."""
    kind = ErrorKind.DECODE


class ComputeError(VaultError):
    """The keyed-hash primitive rejected the key or the time step is unusable."""
    kind = ErrorKind.COMPUTE


class StorageError(VaultError):
    """Reading, writing or creating store files failed, or a record is malformed."""
    kind = ErrorKind.STORAGE


class ExternalServiceError(VaultError):
    """The encryption service failed or could not be started."""
    kind = ErrorKind.EXTERNAL_SERVICE


# =============================================================================
# Message helpers (shared wording across components)
# =============================================================================

def missing_identifier(command: str) -> ValidationError:
    return ValidationError(
        "Error: missing identifier - specify the identifier to use for the command "
        f"{command}",
        operation=command,
    )


def empty_secret(command: str, identifier: str) -> ValidationError:
    return ValidationError(
        "Error: key must not be empty", operation=command, identifier=identifier
    )


def not_found(command: str, identifier: str) -> ValidationError:
    return ValidationError(
        f"Error: no entry found for identifier {identifier}",
        operation=command,
        identifier=identifier,
    )
