"""
Tests for the on-disk vault file.

Tests cover:
- initialize (directories, placeholder seed, idempotence, permissions)
- load error taxonomy (storage / authentication / format)
- header parsing and sanity checks
- crash safety of replace
"""
import os
import struct
import sys

import pytest

from credvault.crypto.aead import seal
from credvault.crypto.hash import VaultKey
from credvault.errors import AuthenticationError, FormatError, StorageError
from credvault.storage.vault import VaultFile, parse_header, save_vault
from credvault.utils.dataModels import (
    Record,
    VaultHeader,
    VAULT_HDR_SIZE,
    VAULT_MAGIC,
    VAULT_VERSION,
)

from conftest import PASSPHRASE


def _is_placeholder(r: Record) -> bool:
    return (r.domain, r.username, r.secret) == ("", "", "")


class TestInitialize:
    """Creating a vault."""

    def test_creates_parent_dirs_and_seeds_placeholder(self, vault, key):
        assert not vault.path.parent.exists()
        assert vault.initialize(key) is True
        assert vault.exists()
        records = vault.load(key)
        assert len(records) == 1
        assert _is_placeholder(records[0])

    def test_idempotent(self, vault, key):
        vault.initialize(key)
        vault.replace(key, [Record("a", "b", "c")])
        before = vault.path.read_bytes()
        assert vault.initialize(key) is False
        assert vault.path.read_bytes() == before

    @pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
    def test_file_is_private(self, vault, key):
        vault.initialize(key)
        assert (vault.path.stat().st_mode & 0o777) == 0o600

    def test_no_plaintext_on_disk(self, vault, key):
        vault.initialize(key)
        vault.replace(key, [Record("example.com", "alice", "hunter2")])
        data = vault.path.read_bytes()
        for needle in (b"example.com", b"alice", b"hunter2", b"password"):
            assert needle not in data


class TestHeader:
    """Header layout and validation."""

    def test_header_reflects_key(self, vault, key):
        vault.initialize(key)
        header = vault.read_header()
        assert header.version == VAULT_VERSION
        assert header.salt == key.salt
        assert header.kdf == key.kdf
        assert vault.path.read_bytes()[:4] == VAULT_MAGIC

    def test_parse_rejects_short(self):
        with pytest.raises(AuthenticationError):
            parse_header(b"CVLT")

    def test_parse_rejects_bad_magic(self, vault, key):
        vault.initialize(key)
        data = b"XXXX" + vault.path.read_bytes()[4:]
        with pytest.raises(AuthenticationError):
            parse_header(data)

    def test_parse_rejects_unknown_version(self, vault, key):
        vault.initialize(key)
        data = bytearray(vault.path.read_bytes())
        data[4] = 99
        with pytest.raises(AuthenticationError):
            parse_header(bytes(data))

    @pytest.mark.parametrize("t, m, p", [(0, 64, 1), (1, 4, 1), (1, 64, 0), (1, 2**31, 1), (1, 64, 16)])
    def test_parse_rejects_insane_kdf(self, t, m, p):
        data = struct.pack(">4sBIII16s", VAULT_MAGIC, VAULT_VERSION, t, m, p, b"\x00" * 16)
        with pytest.raises(AuthenticationError):
            parse_header(data)

    def test_read_header_missing_file(self, vault):
        with pytest.raises(StorageError):
            vault.read_header()


class TestLoadErrors:
    """Failures are reported as distinct error classes."""

    def test_missing_file(self, vault, key):
        with pytest.raises(StorageError):
            vault.load(key)

    def test_wrong_passphrase(self, vault, key):
        vault.initialize(key)
        wrong = VaultKey.derive(PASSPHRASE + "!", key.salt, key.kdf)
        with pytest.raises(AuthenticationError):
            vault.load(wrong)

    def test_every_byte_flip_is_detected(self, vault, key):
        vault.initialize(key)
        original = vault.path.read_bytes()
        for i in range(len(original)):
            tampered = bytearray(original)
            tampered[i] ^= 0x80
            vault.path.write_bytes(bytes(tampered))
            with pytest.raises(AuthenticationError):
                vault.load(key)

    @pytest.mark.parametrize("keep", [0, 10, VAULT_HDR_SIZE, VAULT_HDR_SIZE + 20])
    def test_truncated_file(self, vault, key, keep):
        vault.initialize(key)
        vault.path.write_bytes(vault.path.read_bytes()[:keep])
        with pytest.raises(AuthenticationError):
            vault.load(key)

    def test_bad_json_after_valid_decryption(self, vault, key):
        header = VaultHeader(version=VAULT_VERSION, kdf=key.kdf, salt=key.salt).to_bytes()
        vault.path.parent.mkdir(parents=True)
        save_vault(vault.path, header, seal(key.material, b"{not json", aad=header))
        with pytest.raises(FormatError):
            vault.load(key)

    def test_errors_are_distinct(self):
        assert not issubclass(AuthenticationError, FormatError)
        assert not issubclass(FormatError, AuthenticationError)
        assert not issubclass(StorageError, (AuthenticationError, FormatError))


class TestReplace:
    """Whole-file atomic replacement."""

    def test_replace_then_load(self, vault, key):
        vault.initialize(key)
        records = [Record("a.com", "u1", "p1"), Record("b.com", "u2", "p2")]
        vault.replace(key, records)
        assert vault.load(key) == records

    def test_replace_with_empty_collection(self, vault, key):
        vault.initialize(key)
        vault.replace(key, [])
        assert vault.load(key) == []

    def test_every_write_uses_new_nonce(self, vault, key):
        vault.initialize(key)
        records = vault.load(key)
        vault.replace(key, records)
        first = vault.path.read_bytes()
        vault.replace(key, records)
        second = vault.path.read_bytes()
        assert first[:VAULT_HDR_SIZE] == second[:VAULT_HDR_SIZE]
        assert first[VAULT_HDR_SIZE:VAULT_HDR_SIZE + 12] != second[VAULT_HDR_SIZE:VAULT_HDR_SIZE + 12]

    def test_crash_before_rename_keeps_previous_vault(self, vault, key, monkeypatch):
        vault.initialize(key)
        before = vault.load(key)
        before_bytes = vault.path.read_bytes()

        def crash(src, dst):
            raise OSError("simulated crash before rename")

        monkeypatch.setattr(os, "replace", crash)
        with pytest.raises(StorageError):
            vault.replace(key, before + [Record("new.com", "x", "y")])
        monkeypatch.undo()

        assert vault.path.read_bytes() == before_bytes
        assert vault.load(key) == before
        assert sorted(p.name for p in vault.path.parent.iterdir()) == ["vault.enc"]

    def test_failed_fsync_keeps_previous_vault(self, vault, key, monkeypatch):
        vault.initialize(key)
        before_bytes = vault.path.read_bytes()

        def broken_fsync(fd):
            raise OSError("disk full")

        monkeypatch.setattr(os, "fsync", broken_fsync)
        with pytest.raises(StorageError):
            vault.replace(key, [])
        monkeypatch.undo()

        assert vault.path.read_bytes() == before_bytes
        assert sorted(p.name for p in vault.path.parent.iterdir()) == ["vault.enc"]

    def test_unwritable_directory(self, tmp_path, key):
        blocker = tmp_path / "file"
        blocker.write_bytes(b"")
        vault = VaultFile(blocker / "vault.enc")
        with pytest.raises(StorageError):
            vault.initialize(key)
