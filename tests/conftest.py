"""
Shared pytest fixtures for the credvault test suite.

Autouse fixtures below keep tests fast and isolated:
  - PBKDF2 iterations -> 1 000       (600k per derivation would dominate runtime)
  - CREDVAULT_* env   -> cleared     (a developer's shell must not redirect stores)
  - Logging           -> DEBUG, handlers removed after each test
"""

import logging

import pytest


@pytest.fixture(autouse=True)
def _fast_kdf(monkeypatch):
    """Cut PBKDF2 iterations so salted stores open in milliseconds."""
    import credvault.vault.kdf as kdf_mod

    monkeypatch.setattr(kdf_mod, "PBKDF2_ITERATIONS", 1_000)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path, monkeypatch):
    """Clear credvault settings and run every test from a temp directory.

    Running from tmp_path means the default relative store path and any
    .env lookup both resolve inside the test's own directory.
    """
    from credvault.core import config as config_mod

    for name in (
        config_mod.ENV_STORE_PATH,
        config_mod.ENV_FORMAT,
        config_mod.ENV_STRICT_DECODE,
        config_mod.ENV_LOG_LEVEL,
        config_mod.ENV_LOG_DIR,
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def _isolate_logging():
    """Route structlog through stdlib at DEBUG and drop handlers afterwards.

    Without the teardown, a StreamHandler bound to a capsys stream from one
    test would keep writing to that closed stream in later tests.
    """
    from credvault.core import log as log_mod

    log_mod.configure_logging(level=logging.DEBUG)

    yield

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, log_mod._HANDLER_MARK, False):
            root_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "passwords.enc"


@pytest.fixture
def store(store_path):
    """EncryptedStore in the default sealed-v1 format."""
    from credvault.vault.store import EncryptedStore

    return EncryptedStore(store_path)


@pytest.fixture
def legacy_store(store_path):
    from credvault.vault.store import BlobFormat, EncryptedStore

    return EncryptedStore(store_path, blob_format=BlobFormat.LEGACY)
