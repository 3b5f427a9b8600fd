import logging
import os
import threading

from typing import Dict, List, Tuple

from credvault.crypto.hash import VaultKey
from credvault.errors import InvariantError, RecordIndexError, RecordNotFoundError
from credvault.storage.vault import VaultFile
from credvault.utils.dataModels import KdfParams, Record

logger = logging.getLogger("credvault")


def open_key(vault: VaultFile, passphrase: str, kdf: KdfParams | None = None) -> VaultKey:
    """Derive the session key for ``vault``.

    An existing vault dictates salt and Argon2 parameters through its header;
    for a vault not created yet a fresh salt and ``kdf`` (or defaults) are used.
    """
    if vault.exists():
        header = vault.read_header()
        return VaultKey.derive(passphrase, header.salt, header.kdf)
    return VaultKey.derive(passphrase, kdf=kdf)


def build_index(records: List[Record]) -> Dict[str, int]:
    """Map record id -> current position. Rebuilt from the list on every call."""
    return {r.id: pos for pos, r in enumerate(records)}


class RecordStore:
    """Record-level API over one sealed vault.

    Each call is a complete load -> mutate -> replace cycle on the file; no
    records are cached between calls. Calls are serialized with a lock.
    """

    def __init__(self, vault: VaultFile | str | os.PathLike, key: VaultKey, allow_empty: bool = True):
        self.vault = vault if isinstance(vault, VaultFile) else VaultFile(vault)
        self.key = key
        self.allow_empty = allow_empty
        self._lock = threading.RLock()

    def initialize(self) -> bool:
        with self._lock:
            return self.vault.initialize(self.key)

    def list(self) -> List[Record]:
        with self._lock:
            return self.vault.load(self.key)

    def add(self, domain: str, username: str, secret: str) -> List[Record]:
        with self._lock:
            records = self.vault.load(self.key)
            records.append(Record(domain=domain, username=username, secret=secret))
            self.vault.replace(self.key, records)
            logger.debug("Added record at index %d", len(records) - 1)
            return records

    def get_at(self, index: int) -> Record:
        with self._lock:
            records = self.vault.load(self.key)
            self._check_index(index, records)
            return records[index]

    def remove_at(self, index: int) -> Tuple[List[Record], int]:
        """Remove the record at ``index``.

        Returns the remaining records and the selection the UI should move to.
        """
        with self._lock:
            records = self.vault.load(self.key)
            self._check_index(index, records)
            if len(records) == 1 and not self.allow_empty:
                logger.warning("Refused to remove the last record of %s", self.vault.path)
                raise InvariantError("cannot remove the last record of the vault")
            del records[index]
            self.vault.replace(self.key, records)
            logger.debug("Removed record at index %d, %d left", index, len(records))
            return records, max(0, index - 1)

    def index_of(self, record_id: str) -> int:
        with self._lock:
            return self._lookup(record_id, self.vault.load(self.key))

    def get(self, record_id: str) -> Record:
        with self._lock:
            records = self.vault.load(self.key)
            return records[self._lookup(record_id, records)]

    def remove(self, record_id: str) -> Tuple[List[Record], int]:
        with self._lock:
            return self.remove_at(self.index_of(record_id))

    @staticmethod
    def _check_index(index: int, records: List[Record]) -> None:
        if not 0 <= index < len(records):
            raise RecordIndexError(f"index {index} out of range for {len(records)} record(s)")

    @staticmethod
    def _lookup(record_id: str, records: List[Record]) -> int:
        try:
            return build_index(records)[record_id]
        except KeyError:
            raise RecordNotFoundError(f"no record with id {record_id}") from None
