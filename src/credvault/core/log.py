# Credvault - Diagnostic Logging
#
# Structured logging for vault lifecycle events (load, save, migration).
# Secrets and passphrases are never passed to the logger; account names
# only appear at debug level.

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import structlog


class EventType(str, Enum):
    """Names of the events emitted by the vault modules."""

    STORE_MISSING = "vault.store.missing"
    STORE_LOADED = "vault.store.loaded"
    STORE_SAVED = "vault.store.saved"
    STORE_SAVE_FAILED = "vault.store.save_failed"
    STORE_READ_FAILED = "vault.store.read_failed"
    AUTH_FAILED = "vault.auth.failed"
    DECODE_FAILED = "vault.decode.failed"
    FORMAT_MIGRATION = "vault.format.migration"

    SESSION_OPENED = "vault.session.opened"
    CREDENTIAL_UPSERTED = "vault.credential.upserted"
    CREDENTIAL_REMOVED = "vault.credential.removed"

    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


_HANDLER_MARK = "_credvault_handler"


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Console output goes to stderr so it never mixes with the menu on stdout.
    When ``log_dir`` is set, a daily JSON log file is appended as well.

    Calling this again replaces the handlers installed by a previous call.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
        foreign_pre_chain=shared_processors,
    ))
    setattr(console, _HANDLER_MARK, True)
    root_logger.addHandler(console)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y-%m-%d")
        file_handler = logging.FileHandler(
            log_dir / f"credvault_{today}.log", mode="a", encoding="utf-8"
        )
        file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        ))
        setattr(file_handler, _HANDLER_MARK, True)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)
