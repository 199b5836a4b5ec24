# Tests for the terminal session entry point
# Covers: menu actions, exit codes, restart scenario, wrong passphrase,
#         legacy flag, I/O failure

import getpass
from pathlib import Path

import pytest

from credvault.__main__ import (
    DECRYPT_FAILED_MESSAGE,
    EXIT_AUTH_FAILED,
    EXIT_IO_FAILED,
    EXIT_OK,
    main,
)
from credvault.vault.store import BlobFormat, parse_blob


@pytest.fixture
def terminal(monkeypatch):
    """Script getpass and input() answers for one main() run.

    Returns a function taking (secrets, lines). Running out of scripted
    input raises EOFError, like a closed stdin.
    """

    def script(secrets, lines):
        secret_iter = iter(secrets)
        line_iter = iter(lines)

        def fake_getpass(prompt=""):
            try:
                return next(secret_iter)
            except StopIteration:
                raise EOFError

        def fake_input(prompt=""):
            try:
                return next(line_iter)
            except StopIteration:
                raise EOFError

        monkeypatch.setattr(getpass, "getpass", fake_getpass)
        monkeypatch.setattr("builtins.input", fake_input)

    return script


def run(terminal, store, secrets, lines, extra_args=()):
    terminal(secrets, lines)
    return main(["--store", str(store), *extra_args])


class TestConcreteScenario:
    """hunter2 / email / s3cr3t across three process runs."""

    def test_add_restart_retrieve_wrong(self, terminal, store_path, capsys):
        code = run(terminal, store_path, ["hunter2", "s3cr3t"], ["1", "email", "4"])
        assert code == EXIT_OK
        assert "Password saved." in capsys.readouterr().out
        assert store_path.stat().st_size > 0
        assert b"s3cr3t" not in store_path.read_bytes()

        code = run(terminal, store_path, ["hunter2"], ["2", "email", "4"])
        assert code == EXIT_OK
        assert "Password: s3cr3t" in capsys.readouterr().out

        code = run(terminal, store_path, ["wrong"], ["2", "email", "4"])
        out = capsys.readouterr().out
        assert code == EXIT_AUTH_FAILED
        assert DECRYPT_FAILED_MESSAGE in out
        assert "s3cr3t" not in out


class TestMenu:

    def test_list_entries(self, terminal, store_path, capsys):
        run(terminal, store_path, ["pw", "1", "2"], ["1", "b-svc", "1", "a-svc", "4"])
        capsys.readouterr()

        run(terminal, store_path, ["pw"], ["3", "4"])
        out = capsys.readouterr().out
        assert "Stored accounts:\n- a-svc\n- b-svc" in out

    def test_retrieve_missing(self, terminal, store_path, capsys):
        run(terminal, store_path, ["pw"], ["2", "ghost", "4"])
        assert "No entry found for that account." in capsys.readouterr().out

    def test_account_name_is_trimmed(self, terminal, store_path, capsys):
        run(terminal, store_path, ["pw", "secret"], ["1", "  email \n", "2", "email", "4"])
        assert "Password: secret" in capsys.readouterr().out

    def test_remove_entry(self, terminal, store_path, capsys):
        run(terminal, store_path, ["pw", "x"], ["1", "gone", "5", "gone", "5", "gone", "3", "4"])
        out = capsys.readouterr().out
        assert "Entry removed." in out
        assert "No entry found for that account." in out
        assert "- gone" not in out

    def test_invalid_option(self, terminal, store_path, capsys):
        code = run(terminal, store_path, ["pw"], ["9", "4"])
        assert code == EXIT_OK
        assert "Invalid option." in capsys.readouterr().out

    def test_exit_says_goodbye(self, terminal, store_path, capsys):
        run(terminal, store_path, ["pw"], ["4"])
        assert "Goodbye!" in capsys.readouterr().out

    def test_end_of_input_exits_cleanly(self, terminal, store_path):
        assert run(terminal, store_path, ["pw"], []) == EXIT_OK

    def test_end_of_input_at_passphrase(self, terminal, store_path):
        assert run(terminal, store_path, [], []) == EXIT_OK
        assert not store_path.exists()

    def test_no_write_without_mutation(self, terminal, store_path):
        run(terminal, store_path, ["pw"], ["2", "x", "3", "4"])
        assert not store_path.exists()


class TestFormats:

    def test_default_is_sealed_v1(self, terminal, store_path):
        run(terminal, store_path, ["pw", "s"], ["1", "a", "4"])
        assert parse_blob(store_path.read_bytes()).blob_format is BlobFormat.SEALED_V1

    def test_legacy_flag(self, terminal, store_path):
        run(terminal, store_path, ["pw", "s"], ["1", "a", "4"], extra_args=["--legacy-format"])
        assert parse_blob(store_path.read_bytes()).blob_format is BlobFormat.LEGACY

    def test_store_path_from_environment(self, terminal, tmp_path, monkeypatch):
        target = tmp_path / "env_store.enc"
        monkeypatch.setenv("CREDVAULT_STORE_PATH", str(target))
        terminal(["pw", "s"], ["1", "a", "4"])
        assert main([]) == EXIT_OK
        assert target.exists()

    def test_default_store_path_is_relative(self, terminal, tmp_path):
        terminal(["pw", "s"], ["1", "a", "4"])
        assert main([]) == EXIT_OK
        assert (tmp_path / "passwords.enc").exists()

    def test_bad_format_setting(self, terminal, monkeypatch, store_path, capsys):
        monkeypatch.setenv("CREDVAULT_FORMAT", "plaintext")
        assert run(terminal, store_path, ["pw"], ["4"]) == EXIT_IO_FAILED
        assert "CREDVAULT_FORMAT" in capsys.readouterr().err


class TestFailures:

    def test_corrupted_store(self, terminal, store_path, capsys):
        store_path.write_bytes(b"definitely not a vault")
        assert run(terminal, store_path, ["pw"], ["4"]) == EXIT_AUTH_FAILED
        assert DECRYPT_FAILED_MESSAGE in capsys.readouterr().out

    def test_unreadable_store(self, terminal, tmp_path, capsys):
        directory = tmp_path / "is_a_dir"
        directory.mkdir()
        assert run(terminal, directory, ["pw"], ["4"]) == EXIT_IO_FAILED
        assert "Error:" in capsys.readouterr().err

    def test_save_failure_exits_with_io_code(self, terminal, store_path, monkeypatch, capsys):
        from credvault.vault import store as store_mod
        from credvault.vault.exceptions import IOFailure

        def failing_save(self, mapping, key):
            raise IOFailure("disk full", path=self.path)

        monkeypatch.setattr(store_mod.EncryptedStore, "save", failing_save)
        assert run(terminal, store_path, ["pw", "s"], ["1", "a", "4"]) == EXIT_IO_FAILED
        assert "disk full" in capsys.readouterr().err

    def test_version_flag(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "credvault v" in capsys.readouterr().out

    def test_strict_decode_failure_reports_like_wrong_password(self, terminal, store_path, capsys):
        from credvault.vault import cipher
        from credvault.vault.store import MAGIC, EncryptedStore

        key = EncryptedStore(store_path).derive_key("pw")
        nonce = cipher.generate_nonce()
        store_path.write_bytes(
            MAGIC + b"\x01" + key.salt + nonce + cipher.seal(key.key, nonce, b"not json")
        )

        code = run(terminal, store_path, ["pw"], ["4"], extra_args=["--strict-decode"])
        assert code == EXIT_AUTH_FAILED
        assert DECRYPT_FAILED_MESSAGE in capsys.readouterr().out

    def test_lenient_decode_failure_starts_empty(self, terminal, store_path, capsys):
        from credvault.vault import cipher
        from credvault.vault.store import MAGIC, EncryptedStore

        key = EncryptedStore(store_path).derive_key("pw")
        nonce = cipher.generate_nonce()
        store_path.write_bytes(
            MAGIC + b"\x01" + key.salt + nonce + cipher.seal(key.key, nonce, b"not json")
        )

        assert run(terminal, store_path, ["pw"], ["3", "4"]) == EXIT_OK
        assert "Stored accounts:\n\nOptions:" in capsys.readouterr().out


class TestInterrupt:

    def test_ctrl_c_at_passphrase(self, store_path, monkeypatch, capsys):
        def interrupted_getpass(prompt=""):
            raise KeyboardInterrupt

        monkeypatch.setattr(getpass, "getpass", interrupted_getpass)
        assert main(["--store", str(store_path)]) == EXIT_OK
        assert "Interrupted." in capsys.readouterr().out
        assert not store_path.exists()

    def test_ctrl_c_during_unlock(self, terminal, store_path, monkeypatch, capsys):
        from credvault.vault import CredentialSession

        def interrupted_open(store, passphrase):
            raise KeyboardInterrupt

        monkeypatch.setattr(CredentialSession, "open", interrupted_open)
        assert run(terminal, store_path, ["pw"], ["4"]) == EXIT_OK
        assert "Interrupted." in capsys.readouterr().out
