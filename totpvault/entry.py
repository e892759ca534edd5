"""
TOTPVault - Entry record and identifier rules.

An identifier names one stored secret. It doubles as a line key in the
plain store and a file name in the sealed store, so it must be safe for
both.
"""

import os
from dataclasses import dataclass

from .errors import ValidationError, missing_identifier


@dataclass(frozen=True)
class Entry:
    identifier: str
    secret: str


_SEPARATORS = {"/", "\\", os.sep} | ({os.altsep} if os.altsep else set())


def check_identifier(identifier: str, delimiter: str = " ", operation: str = "save") -> str:
    """
    Reject identifiers that cannot be stored safely in either backend.

    Returns the identifier unchanged when it is acceptable.
    """
    if not identifier:
        raise missing_identifier(operation)

    # Undecodable argv bytes arrive as lone surrogates
    printable = identifier.encode("utf-8", "backslashreplace").decode("utf-8")

    problem = None
    if printable != identifier:
        problem = "must be valid UTF-8 text"
    elif delimiter in identifier or any(ch.isspace() for ch in identifier):
        problem = "must not contain whitespace or the field delimiter"
    elif any(sep in identifier for sep in _SEPARATORS) or "\0" in identifier:
        problem = "must not contain path separators"
    elif identifier.startswith("."):
        problem = "must not start with '.'"

    if problem:
        raise ValidationError(
            f"Error: invalid identifier \"{printable}\" - {problem}",
            operation=operation,
            identifier=identifier,
        )
    return identifier
