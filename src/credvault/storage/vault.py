import logging
import os
import struct
import tempfile

from pathlib import Path
from typing import List, Tuple

from credvault.crypto.aead import seal, unseal
from credvault.crypto.hash import VaultKey
from credvault.errors import AuthenticationError, StorageError
from credvault.storage import codec
from credvault.utils.dataModels import (
    KdfParams,
    Record,
    VaultHeader,
    VAULT_HDR_FMT,
    VAULT_HDR_SIZE,
    VAULT_MAGIC,
    VAULT_VERSION,
)

logger = logging.getLogger("credvault")


def parse_header(data: bytes) -> VaultHeader:
    """Parse and sanity-check the fixed header at the start of ``data``.

    A header that cannot be trusted is treated as corruption of the sealed
    vault, hence AuthenticationError rather than a format problem.
    """
    if len(data) < VAULT_HDR_SIZE:
        raise AuthenticationError("vault file is too small or corrupt")
    try:
        magic, ver, t, m, p, salt = struct.unpack(VAULT_HDR_FMT, data[:VAULT_HDR_SIZE])
    except struct.error as err:
        raise AuthenticationError(f"unreadable vault header: {err}") from err
    if magic != VAULT_MAGIC:
        raise AuthenticationError("invalid vault magic")
    if ver != VAULT_VERSION:
        raise AuthenticationError(f"unsupported vault version {ver}")
    kdf = KdfParams(t_cost=t, m_cost=m, parallelism=p)
    if not kdf.is_sane():
        raise AuthenticationError(f"vault header carries out-of-range KDF parameters t={t} m={m} p={p}")
    return VaultHeader(version=ver, kdf=kdf, salt=salt)


def _fsync_dir(directory: Path) -> None:
    if os.name == "nt":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def save_vault(path: Path, header: bytes, blob: bytes) -> None:
    """Write header || blob to ``path`` through a synced temp file and rename."""
    directory = path.parent
    fd, tmp = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(header)
            f.write(blob)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    try:
        _fsync_dir(directory)
    except OSError as err:
        # rename already happened; only durability of the directory entry is in doubt
        logger.warning("Could not fsync directory %s: %s", directory, err)


def load_vault(path: Path) -> Tuple[VaultHeader, bytes, bytes]:
    """Return (header, raw header bytes, sealed blob)."""
    try:
        data = path.read_bytes()
    except OSError as err:
        raise StorageError(f"cannot read vault {path}: {err}") from err
    header = parse_header(data)
    return header, data[:VAULT_HDR_SIZE], data[VAULT_HDR_SIZE:]


class VaultFile:
    """The sealed vault at one path.

    Every write replaces the whole file atomically; a reader sees either the
    previous vault or the new one, never a partial write.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"VaultFile({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_file()

    def read_header(self) -> VaultHeader:
        try:
            with self.path.open("rb") as f:
                data = f.read(VAULT_HDR_SIZE)
        except OSError as err:
            raise StorageError(f"cannot read vault {self.path}: {err}") from err
        return parse_header(data)

    def initialize(self, key: VaultKey) -> bool:
        """Create the vault seeded with one placeholder record.

        Returns False without touching anything when the file already exists.
        """
        if self.path.exists():
            logger.debug("Vault %s already exists, leaving it untouched", self.path)
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise StorageError(f"cannot create directory {self.path.parent}: {err}") from err
        self.replace(key, [Record.placeholder()])
        logger.info("Initialized vault at %s", self.path)
        return True

    def load(self, key: VaultKey) -> List[Record]:
        _, header_bytes, blob = load_vault(self.path)
        plaintext = unseal(key.material, blob, aad=header_bytes)
        records = codec.decode(plaintext)
        logger.debug("Loaded %d record(s) from %s", len(records), self.path)
        return records

    def replace(self, key: VaultKey, records: List[Record]) -> None:
        header = VaultHeader(version=VAULT_VERSION, kdf=key.kdf, salt=key.salt).to_bytes()
        blob = seal(key.material, codec.encode(records), aad=header)
        try:
            save_vault(self.path, header, blob)
        except OSError as err:
            logger.error("Failed to write vault %s: %s", self.path, err)
            raise StorageError(f"cannot write vault {self.path}: {err}") from err
        logger.debug("Wrote %d record(s) to %s", len(records), self.path)
