# Credvault - Terminal Session
#
# Interactive menu over the Credential API. Holds no state of its own
# beyond the open CredentialSession.
#
# Exit codes:
#   0  normal exit (menu "Exit" or end of input)
#   1  store could not be decrypted (wrong passphrase or corrupted file)
#   2  store file could not be read or written

import argparse
import getpass
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .core import EventType, configure_logging, get_logger
from .core.config import load_config
from .vault import (
    AuthenticationFailure,
    BlobFormat,
    CredentialSession,
    DecodeFailure,
    EncryptedStore,
    IOFailure,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_AUTH_FAILED = 1
EXIT_IO_FAILED = 2

DECRYPT_FAILED_MESSAGE = "Failed to decrypt data. Possibly wrong password."

MENU = """
Options:
1. Add password
2. Retrieve password
3. List entries
4. Exit
5. Remove entry
Choose an option:"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="credvault",
        description="Credvault - local encrypted credential store",
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Store file path (default: $CREDVAULT_STORE_PATH or passwords.enc)",
    )
    parser.add_argument(
        "--legacy-format",
        action="store_true",
        help="Write the unsalted, fixed-nonce legacy format (compatibility only)",
    )
    parser.add_argument(
        "--strict-decode",
        action="store_true",
        default=None,
        help="Fail instead of starting empty when decrypted data is malformed",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level for stderr diagnostics (default: WARNING)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"credvault v{__version__}",
    )
    return parser


def _read_line(prompt: str) -> str:
    print(prompt)
    return input().strip()


def run_menu(session: CredentialSession) -> int:
    """Loop over menu choices until Exit or end of input."""
    while True:
        print(MENU)
        try:
            choice = input().strip()
        except EOFError:
            return EXIT_OK

        try:
            if choice == "1":
                account = _read_line("Enter account name:")
                secret = getpass.getpass("Enter password:\n")
                session.upsert(account, secret)
                print("Password saved.")
            elif choice == "2":
                account = _read_line("Enter account name:")
                secret = session.lookup(account)
                if secret is None:
                    print("No entry found for that account.")
                else:
                    print(f"Password: {secret}")
            elif choice == "3":
                print("Stored accounts:")
                for account in session.enumerate():
                    print(f"- {account}")
            elif choice == "4":
                print("Goodbye!")
                return EXIT_OK
            elif choice == "5":
                account = _read_line("Enter account name:")
                if session.remove(account):
                    print("Entry removed.")
                else:
                    print("No entry found for that account.")
            else:
                print("Invalid option.")
        except EOFError:
            return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the credvault console script.

    Returns the process exit code.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_IO_FAILED

    config = config.with_overrides(
        store_path=args.store,
        blob_format=BlobFormat.LEGACY if args.legacy_format else None,
        strict_decode=args.strict_decode,
        log_level=args.log_level,
    )
    configure_logging(level=config.log_level, log_dir=config.log_dir)
    logger.info(
        EventType.SYSTEM_START.value,
        version=__version__,
        store=str(config.store_path),
        blob_format=config.blob_format.value,
    )

    print("Credvault - Simple Password Manager")
    try:
        passphrase = getpass.getpass("Enter your master password:\n")
    except EOFError:
        return EXIT_OK
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return EXIT_OK

    store = EncryptedStore(
        config.store_path,
        blob_format=config.blob_format,
        lenient_decode=not config.strict_decode,
    )

    try:
        session = CredentialSession.open(store, passphrase)
    except (AuthenticationFailure, DecodeFailure):
        print(DECRYPT_FAILED_MESSAGE)
        return EXIT_AUTH_FAILED
    except IOFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_IO_FAILED
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return EXIT_OK

    try:
        code = run_menu(session)
    except IOFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        code = EXIT_IO_FAILED
    except KeyboardInterrupt:
        print("\nInterrupted.")
        code = EXIT_OK

    logger.info(EventType.SYSTEM_STOP.value, exit_code=code)
    return code


if __name__ == "__main__":
    sys.exit(main())
