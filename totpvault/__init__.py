"""
TOTPVault - Personal TOTP Credential Vault

Stores Base32 shared secrets under short identifiers and computes RFC 6238
one-time codes from them.

Key Features:
- Two interchangeable stores: plain key file or one gpg-encrypted file per entry
- Sealed store bound to one recipient identity recorded at init
- Bit-exact RFC 4226/6238 codes (HMAC-SHA1, 30s step, 6 digits)
- Crash-safe rewrites: temp file + atomic rename

Components:
- codec.py: Base32 decoding
- totp.py: TOTP engine
- plain.py / sealed.py: entry stores
- sealer.py: gpg encryption service
- vault.py: store facade (init/list/save/read/update/delete/compute)
- cli.py: Command-line interface (uses built-in argparse)

Usage:
    totpvault init "Test Man"       # Create sealed vault
    totpvault save github           # Add key (prompted)
    totpvault list                  # List identifiers
    totpvault compute github        # Current code
"""

__version__ = "0.3.0"

from .config import VaultConfig
from .errors import (
    ComputeError,
    DecodeError,
    ErrorKind,
    ExternalServiceError,
    StorageError,
    ValidationError,
    VaultError,
)
from .vault import Vault

__all__ = [
    "ComputeError",
    "DecodeError",
    "ErrorKind",
    "ExternalServiceError",
    "StorageError",
    "ValidationError",
    "Vault",
    "VaultConfig",
    "VaultError",
]
