"""Shared fixtures: a vault path under tmp_path and cheap Argon2 keys."""
import pytest

from credvault.crypto.hash import VaultKey
from credvault.storage.vault import VaultFile
from credvault.utils.core import RecordStore
from credvault.utils.dataModels import KdfParams

# Minimal Argon2 cost so each derivation takes milliseconds
FAST_KDF = KdfParams(t_cost=1, m_cost=64, parallelism=1)
PASSPHRASE = "correct horse battery staple"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own credvault settings out of the tests."""
    for name in (
        "CREDVAULT_PATH",
        "CREDVAULT_T_COST",
        "CREDVAULT_M_COST",
        "CREDVAULT_PARALLELISM",
        "CREDVAULT_PASSPHRASE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fast_kdf():
    return KdfParams(t_cost=FAST_KDF.t_cost, m_cost=FAST_KDF.m_cost, parallelism=FAST_KDF.parallelism)


@pytest.fixture
def key(fast_kdf):
    k = VaultKey.derive(PASSPHRASE, kdf=fast_kdf)
    yield k
    k.wipe()


@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "profile" / "credvault" / "vault.enc"


@pytest.fixture
def vault(vault_path):
    return VaultFile(vault_path)


@pytest.fixture
def store(vault, key):
    s = RecordStore(vault, key)
    s.initialize()
    return s
