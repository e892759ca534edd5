"""
TOTPVault - TOTP Engine

RFC 4226 (HOTP) dynamic truncation applied to an RFC 6238 time step:

    1. message = time_step as 8-byte big-endian unsigned integer
    2. digest  = HMAC-SHA1(key=secret, msg=message)          (20 bytes)
    3. offset  = digest[19] & 0x0F
    4. value   = digest[offset:offset+4] as big-endian int, top bit cleared
    5. code    = value mod 10^6, zero-padded to 6 characters

RFC 6238 test vector (key = b"12345678901234567890"):
    time_step 1        -> "287082"
    time_step 37037036 -> "081804"

This is a generation routine, not a verifier: no constant-time comparison
is needed, and nothing below branches on secret bytes.
"""

import struct
import time
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac

from .errors import ComputeError


# =============================================================================
# Configuration
# =============================================================================

DIGITS = 6               # code length
BASE = 10                # decimal codes
TIME_STEP_SECONDS = 30   # RFC 6238 default X
T0 = 0                   # Unix epoch

MAX_TIME_STEP = 2**64 - 1


# =============================================================================
# Time steps
# =============================================================================

def time_step(now: Optional[float] = None, interval: int = TIME_STEP_SECONDS) -> int:
    """Counter for the window containing `now` (defaults to current time)."""
    if now is None:
        now = time.time()
    step = int((now - T0) // interval)
    if step < 0 or step > MAX_TIME_STEP:
        raise ComputeError(
            f"Error: could not determine time step for time {now}",
            operation="compute",
        )
    return step


# =============================================================================
# Code computation
# =============================================================================

def dynamic_truncate(digest: bytes) -> int:
    """31-bit value picked from the digest by its own low nibble."""
    offset = digest[-1] & 0x0F
    (value,) = struct.unpack(">I", digest[offset:offset + 4])
    return value & 0x7FFFFFFF


def compute(
    secret: bytes,
    step: int,
    digits: int = DIGITS,
    algorithm: Optional[hashes.HashAlgorithm] = None,
) -> str:
    """
    Compute the TOTP code for raw key bytes and a time step.

    Args:
        secret: decoded shared key
        step: time step counter (0 <= step < 2^64)
        digits: code length
        algorithm: hash for the HMAC (SHA-1 unless told otherwise)

    Returns:
        Zero-padded decimal string of exactly `digits` characters

    Raises:
        ComputeError: if the key is rejected or the step does not fit 64 bits
    """
    if not secret:
        raise ComputeError(
            "Error: invalid key length - key must not be empty", operation="compute"
        )
    if step < 0 or step > MAX_TIME_STEP:
        raise ComputeError(
            f"Error: time step {step} does not fit in 64 bits", operation="compute"
        )

    message = struct.pack(">Q", step)
    try:
        mac = hmac.HMAC(secret, algorithm or hashes.SHA1())
        mac.update(message)
        digest = mac.finalize()
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise ComputeError(
            f"Error: invalid key length - {e}", operation="compute", cause=e
        ) from e

    code = dynamic_truncate(digest) % (BASE ** digits)
    return str(code).zfill(digits)
