"""
TOTPVault - Command-line interface

    totpvault init "Test Man"        # record the gpg recipient (sealed store)
    totpvault save github            # prompts for the Base32 key
    totpvault list
    totpvault github                 # not a command: treated as compute github
    totpvault compute github --copy
    totpvault --backend plain --file keys.txt update github
    totpvault delete github

Every command has a one-letter alias (i l s r u d c). Errors go to stderr
and exit with status 1.
"""

import argparse
import getpass
import logging
import sys
from typing import List, Optional

import pyperclip

from . import __version__
from .config import BACKENDS, VaultConfig
from .errors import ExternalServiceError, VaultError
from .vault import (
    ALIASES,
    COMMAND_COMPUTE,
    COMMAND_SAVE,
    COMMAND_UPDATE,
    COMMANDS,
    Vault,
    resolve_command,
)


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="totpvault",
        description="TOTP manager: store Base32 keys and compute one-time codes.",
        epilog="Commands: " + ", ".join(
            f"{command} ({alias})" for alias, command in sorted(ALIASES.items())
        ),
    )
    p.add_argument("command", nargs="?", help="command to run (default: compute)")
    p.add_argument("identifier", nargs="?", help="entry identifier (gpg recipient for init)")
    p.add_argument("--backend", choices=BACKENDS, help="store backend (default: sealed)")
    p.add_argument("--dir", dest="vault_dir", help="sealed store directory")
    p.add_argument("-f", "--file", dest="plain_file", help="plain store file")
    p.add_argument("--gpg-home", help="gpg home directory")
    p.add_argument("--gpg", dest="gpg_command", help="gpg binary")
    p.add_argument("--copy", action="store_true", help="compute: also copy the code to the clipboard")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def prompt_secret(identifier: str) -> str:
    return getpass.getpass(f"Enter key for identifier {identifier}: ")


def copy_to_clipboard(text: str) -> None:
    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        raise ExternalServiceError(
            f"Error: could not copy to clipboard - {e}", operation="copy", cause=e
        ) from e


def execute(args: argparse.Namespace, vault: Vault) -> str:
    command, identifier = args.command, args.identifier
    # "totpvault github" means "totpvault compute github"
    if command and identifier is None and command not in COMMANDS and command not in ALIASES:
        command, identifier = COMMAND_COMPUTE, command
    command = resolve_command(command)

    secret = None
    if command in (COMMAND_SAVE, COMMAND_UPDATE):
        identifier = vault.prepare(command, identifier)
        secret = prompt_secret(identifier)

    if command == COMMAND_COMPUTE and args.copy:
        code = vault.code(identifier)
        copy_to_clipboard(code)
        return f"Current TOTP for {identifier} is {code}\nCopied to clipboard."
    return vault.run(command, identifier, secret)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = VaultConfig.from_env().with_overrides(
            backend=args.backend,
            vault_dir=args.vault_dir,
            plain_file=args.plain_file,
            gpg_home=args.gpg_home,
            gpg_command=args.gpg_command,
        )
        output = execute(args, Vault(config))
    except VaultError as e:
        logger.debug("%s failed: %r", e.operation, e.cause)
        print(str(e), file=sys.stderr)
        return 1
    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
