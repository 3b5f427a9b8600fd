import struct

from dataclasses import dataclass, field
from typing import Dict, Any

from credvault.utils.helper import new_record_id, rel_time_iso

DEFAULT_T_COST = 4
DEFAULT_M_COST_KiB = 262144  # 256 MiB (tune per device)
DEFAULT_PARALLELISM = 2

# Bounds accepted from a vault header before any key derivation runs
MIN_T_COST, MAX_T_COST = 1, 64
MIN_M_COST_KiB, MAX_M_COST_KiB = 8, 4 * 1024 * 1024
MIN_PARALLELISM, MAX_PARALLELISM = 1, 64

KEY_SIZE = 32
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16

VAULT_MAGIC = b"CVLT"
VAULT_VERSION = 1
VAULT_HDR_FMT = ">4sBIII16s"  # magic, ver, t, m, p, salt(16)
VAULT_HDR_SIZE = struct.calcsize(VAULT_HDR_FMT)


@dataclass
class KdfParams:
    t_cost: int = DEFAULT_T_COST
    m_cost: int = DEFAULT_M_COST_KiB
    parallelism: int = DEFAULT_PARALLELISM

    def is_sane(self) -> bool:
        return (
            MIN_T_COST <= self.t_cost <= MAX_T_COST
            and MIN_PARALLELISM <= self.parallelism <= MAX_PARALLELISM
            and max(MIN_M_COST_KiB, 8 * self.parallelism) <= self.m_cost <= MAX_M_COST_KiB
        )


@dataclass
class VaultHeader:
    version: int
    kdf: KdfParams
    salt: bytes

    def to_bytes(self) -> bytes:
        return struct.pack(
            VAULT_HDR_FMT,
            VAULT_MAGIC,
            self.version,
            self.kdf.t_cost,
            self.kdf.m_cost,
            self.kdf.parallelism,
            self.salt,
        )


@dataclass
class Record:
    """One credential entry.

    ``id`` is stable across insertions and deletions; list position is only
    the current view of the collection.
    """
    domain: str
    username: str
    secret: str
    id: str = field(default_factory=new_record_id)
    created_at: str = field(default_factory=rel_time_iso)

    @classmethod
    def placeholder(cls) -> "Record":
        return cls(domain="", username="", secret="")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "domain": self.domain,
            "username": self.username,
            "password": self.secret,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Record":
        return Record(
            domain=d["domain"],
            username=d["username"],
            secret=d["password"],
            id=d["id"] if "id" in d else new_record_id(),
            created_at=d.get("created_at", ""),
        )
