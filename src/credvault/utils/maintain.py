import logging

from credvault.crypto.hash import VaultKey
from credvault.storage.vault import VaultFile
from credvault.utils.dataModels import KdfParams

logger = logging.getLogger("credvault")


def rotate_passphrase(
    vault: VaultFile,
    old_key: VaultKey,
    new_passphrase: str,
    t_cost: int | None = None,
    m_cost: int | None = None,
    parallelism: int | None = None,
) -> VaultKey:
    """Re-seal the vault under a key derived from ``new_passphrase``.

    Steps:
      1) Load records with the current key (fails before any write if it is wrong).
      2) Derive the new key with a fresh salt; Argon2 params default to the old ones.
      3) Atomically replace the vault, header and all, under the new key.
    The caller owns both keys and is responsible for wiping the old one.
    """
    records = vault.load(old_key)
    kdf = KdfParams(
        t_cost=t_cost if t_cost is not None else old_key.kdf.t_cost,
        m_cost=m_cost if m_cost is not None else old_key.kdf.m_cost,
        parallelism=parallelism if parallelism is not None else old_key.kdf.parallelism,
    )
    if not kdf.is_sane():
        raise ValueError(f"KDF parameters out of range: {kdf}")
    new_key = VaultKey.derive(new_passphrase, kdf=kdf)
    vault.replace(new_key, records)
    logger.info(
        "Rotated vault key for %s (t=%d m=%d p=%d)", vault.path, kdf.t_cost, kdf.m_cost, kdf.parallelism
    )
    return new_key
