"""
TOTPVault - Base32 Codec

Secrets are stored as the RFC 4648 Base32 text the user typed (A-Z, 2-7,
no padding). This module turns that text into the raw key bytes the TOTP
engine needs. Pure functions, no I/O.

Callers upper-case the text first; lower-case input is rejected here.
"""

import base64
import binascii
import re

from .errors import DecodeError


ALPHABET_RE = re.compile(r"[A-Z2-7]*")

# Unpadded lengths (mod 8) that cannot come from whole bytes
INVALID_REMAINDERS = (1, 3, 6)

INVALID_ENCODING = "Error: invalid key encoding (must be Base32)"


def canonicalize(text: str) -> str:
    """Upper-case, drop whitespace and trailing padding."""
    return "".join(text.split()).upper().rstrip("=")


def encode(data: bytes) -> str:
    """Encode bytes as unpadded upper-case Base32."""
    return base64.b32encode(data).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """
    Decode unpadded Base32 text into raw bytes.

    Raises:
        DecodeError: on a symbol outside the alphabet, an impossible length,
            or non-zero trailing bits.
    """
    stripped = text.rstrip("=")
    if not ALPHABET_RE.fullmatch(stripped) or len(stripped) % 8 in INVALID_REMAINDERS:
        raise DecodeError(INVALID_ENCODING, operation="decode")

    padded = stripped + "=" * (-len(stripped) % 8)
    try:
        data = base64.b32decode(padded)
    except binascii.Error as e:
        raise DecodeError(INVALID_ENCODING, operation="decode", cause=e) from e

    # b32decode ignores leftover bits; a canonical encoding has them all zero
    if encode(data) != stripped:
        raise DecodeError(INVALID_ENCODING, operation="decode")
    return data
