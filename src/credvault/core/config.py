# Credvault - Configuration
#
# Settings come from .env files (python-dotenv), then the process
# environment. Command-line flags are applied on top by the entry point.

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from ..vault.store import BlobFormat

DEFAULT_STORE_PATH = "passwords.enc"

ENV_STORE_PATH = "CREDVAULT_STORE_PATH"
ENV_FORMAT = "CREDVAULT_FORMAT"
ENV_STRICT_DECODE = "CREDVAULT_STRICT_DECODE"
ENV_LOG_LEVEL = "CREDVAULT_LOG_LEVEL"
ENV_LOG_DIR = "CREDVAULT_LOG_DIR"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class VaultConfig:
    """Resolved runtime settings for one process."""

    store_path: Path = Path(DEFAULT_STORE_PATH)
    blob_format: BlobFormat = BlobFormat.SEALED_V1
    strict_decode: bool = False
    log_level: str = "WARNING"
    log_dir: Optional[Path] = None

    def with_overrides(self, **changes) -> "VaultConfig":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _parse_format(value: str) -> BlobFormat:
    try:
        return BlobFormat(value.strip().lower())
    except ValueError:
        valid = ", ".join(f.value for f in BlobFormat)
        raise ValueError(f"{ENV_FORMAT} must be one of: {valid} (got {value!r})")


def load_config(env_file: Optional[Path] = None) -> VaultConfig:
    """
    Build a VaultConfig from the environment.

    Args:
        env_file: Explicit .env file. When None, the nearest .env at or
                  above the working directory is used. Existing environment
                  variables are never overridden.

    Raises:
        ValueError: If CREDVAULT_FORMAT names an unknown format.
    """
    if env_file is None:
        env_file = find_dotenv(usecwd=True) or None
    if env_file is not None:
        load_dotenv(env_file, override=False)

    store_path = os.environ.get(ENV_STORE_PATH) or DEFAULT_STORE_PATH
    fmt = os.environ.get(ENV_FORMAT)
    log_dir = os.environ.get(ENV_LOG_DIR)

    return VaultConfig(
        store_path=Path(store_path),
        blob_format=_parse_format(fmt) if fmt else BlobFormat.SEALED_V1,
        strict_decode=os.environ.get(ENV_STRICT_DECODE, "").strip().lower() in _TRUTHY,
        log_level=os.environ.get(ENV_LOG_LEVEL, "WARNING").strip().upper() or "WARNING",
        log_dir=Path(log_dir) if log_dir else None,
    )
