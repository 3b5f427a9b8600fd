import os

from argon2.low_level import hash_secret_raw, Type as Argon2Type
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes

from credvault.utils.dataModels import KEY_SIZE, SALT_SIZE, KdfParams


def sha3_512_bytes(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA3_512(), backend=default_backend())
    digest.update(data)
    return digest.finalize()


def derive_kmaster(passphrase: str, salt: bytes, t_cost: int, m_cost_kib: int, parallelism: int) -> bytes:
    """Kmaster = Argon2id(SHA3-512(passphrase)) -> 32 bytes"""
    prehash = sha3_512_bytes(passphrase.encode("utf-8"))
    kmaster = hash_secret_raw(
        secret=prehash,
        salt=salt,
        time_cost=t_cost,
        memory_cost=m_cost_kib,
        parallelism=parallelism,
        hash_len=KEY_SIZE,
        type=Argon2Type.ID,
    )
    return kmaster


class VaultKey:
    """Session key for one vault.

    Holds the derived key in a mutable buffer so it can be zeroed when the
    session ends, together with the salt and Argon2 parameters that produced
    it (they are written into the vault header).

    ``wipe()`` only zeroes that buffer. Every ``material`` access returns an
    immutable ``bytes`` copy, and the AEAD layer copies it again; those copies
    cannot be zeroed and live until the garbage collector reclaims them.
    """

    def __init__(self, material: bytes, salt: bytes, kdf: KdfParams):
        if len(material) != KEY_SIZE:
            raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(material)}")
        self._material = bytearray(material)
        self.salt = salt
        self.kdf = kdf
        self._wiped = False

    @classmethod
    def derive(cls, passphrase: str, salt: bytes | None = None, kdf: KdfParams | None = None) -> "VaultKey":
        kdf = kdf or KdfParams()
        salt = salt if salt is not None else os.urandom(SALT_SIZE)
        if len(salt) != SALT_SIZE:
            raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(salt)}")
        material = derive_kmaster(passphrase, salt, kdf.t_cost, kdf.m_cost, kdf.parallelism)
        return cls(material, salt, kdf)

    @property
    def material(self) -> bytes:
        if self._wiped:
            raise ValueError("vault key has been wiped")
        return bytes(self._material)

    @property
    def wiped(self) -> bool:
        return self._wiped

    def wipe(self) -> None:
        for i in range(len(self._material)):
            self._material[i] = 0
        self._wiped = True

    def __enter__(self) -> "VaultKey":
        return self

    def __exit__(self, *exc) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"VaultKey(t={self.kdf.t_cost}, m={self.kdf.m_cost}, p={self.kdf.parallelism}, wiped={self._wiped})"
