"""
TOTPVault - Plain Entry Store

One UTF-8 text file, one entry per line:

    <identifier><delimiter><secret>\n

Lines stay in insertion order on disk; list() sorts at read time.
A line without the delimiter makes the whole file unreadable - partial
corruption is reported, never skipped.

update() and delete() read everything, change the list in memory and
rewrite the file through a temporary file + os.replace(), so a crash
leaves either the old or the new file, never a truncated one. There is
no locking: one live process per store is assumed.
"""

import logging
import os
import shutil
import tempfile
from typing import List, Optional

from .config import VaultConfig
from .entry import Entry, check_identifier
from .errors import StorageError, not_found


logger = logging.getLogger(__name__)


class PlainStore:
    """
    Flat-file store bound to one path.

    Usage:
        store = PlainStore("keys.txt")
        store.ensure_exists()
        store.write("github", "JBSWY3DPEHPK3PXP")
        store.find("github")   # Entry("github", "JBSWY3DPEHPK3PXP")
    """

    def __init__(self, path: str, delimiter: str = " "):
        self.path = path
        self.delimiter = delimiter

    @classmethod
    def from_config(cls, config: VaultConfig) -> "PlainStore":
        return cls(config.plain_path, config.delimiter)

    # =========================================================================
    # READ PATH
    # =========================================================================

    def init(self, recipient: Optional[str] = None) -> None:
        """Plain files have no trust anchor; initializing just creates the file."""
        self.ensure_exists()

    def ensure_exists(self) -> None:
        """Create the file (and its directory) if it is missing."""
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            if not os.path.exists(self.path):
                with open(self.path, "a", encoding="utf-8"):
                    pass
                logger.info("Created key file %s", self.path)
        except OSError as e:
            raise StorageError(
                f"Error creating file - {e}", operation="init", cause=e
            ) from e

    def entries(self) -> List[Entry]:
        """All entries in file order."""
        try:
            with open(self.path, "r", encoding="utf-8", newline="\n") as f:
                lines = f.read().split("\n")
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Error reading file - {e}", operation="read", cause=e) from e

        # A well-formed file ends with "\n", leaving one empty tail element
        if lines and lines[-1] == "":
            lines.pop()

        result = []
        for lineno, line in enumerate(lines, 1):
            identifier, sep, secret = line.partition(self.delimiter)
            if not sep:
                raise StorageError(
                    f"Error reading file - malformed line {lineno} in {self.path}",
                    operation="read",
                )
            result.append(Entry(identifier, secret))
        return result

    def list(self) -> List[str]:
        return sorted(entry.identifier for entry in self.entries())

    def find(self, identifier: str) -> Optional[Entry]:
        for entry in self.entries():
            if entry.identifier == identifier:
                logger.debug("Found key for identifier %s", identifier)
                return entry
        return None

    def exists(self, identifier: str) -> bool:
        return self.find(identifier) is not None

    def read(self, identifier: str) -> Optional[str]:
        entry = self.find(identifier)
        return entry.secret if entry else None

    # =========================================================================
    # MUTATION PATH
    # =========================================================================

    def write(self, identifier: str, secret: str) -> None:
        """
        Append one entry.

        Uniqueness is the caller's job: check exists() first.
        """
        check_identifier(identifier, self.delimiter, "save")
        self.ensure_exists()
        record = f"{identifier}{self.delimiter}{secret}\n"
        try:
            # A hand-edited file may lack the final newline
            if self._missing_final_newline():
                record = "\n" + record
            with open(self.path, "a", encoding="utf-8", newline="\n") as f:
                f.write(record)
        except (OSError, UnicodeError) as e:
            raise StorageError(
                f"Error: could not write key to file - {e}",
                operation="save",
                identifier=identifier,
                cause=e,
            ) from e
        logger.info("Saved key for identifier %s", identifier)

    def update(self, identifier: str, new_secret: str) -> None:
        """Replace the secret of an existing entry; fails if it is absent."""
        entries = self.entries()
        index = self._index_of(entries, identifier, "update")
        entries[index] = Entry(identifier, new_secret)
        self._rewrite(entries, "update")
        logger.info("Updated key for identifier %s", identifier)

    def delete(self, identifier: str) -> None:
        """Remove an existing entry; fails if it is absent."""
        entries = self.entries()
        index = self._index_of(entries, identifier, "delete")
        del entries[index]
        self._rewrite(entries, "delete")
        logger.info("Deleted key for identifier %s", identifier)

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    @staticmethod
    def _index_of(entries: List[Entry], identifier: str, operation: str) -> int:
        for i, entry in enumerate(entries):
            if entry.identifier == identifier:
                return i
        raise not_found(operation, identifier)

    def _missing_final_newline(self) -> bool:
        with open(self.path, "rb") as f:
            f.seek(0, os.SEEK_END)
            if f.tell() == 0:
                return False
            f.seek(-1, os.SEEK_END)
            return f.read(1) != b"\n"

    def _rewrite(self, entries: List[Entry], operation: str) -> None:
        """Write all entries to a temp file next to the store, then swap it in."""
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".keys-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                for entry in entries:
                    f.write(f"{entry.identifier}{self.delimiter}{entry.secret}\n")
                f.flush()
                os.fsync(f.fileno())
            if os.path.exists(self.path):
                shutil.copymode(self.path, tmp_path)
            os.replace(tmp_path, self.path)
        except (OSError, UnicodeError) as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageError(
                f"Error rewriting file - {e}", operation=operation, cause=e
            ) from e
