#!/usr/bin/env python3
"""
credvault – local, single-user credential vault (encrypted at rest)

The whole record collection (domain / username / password entries) lives in
one binary file. Every change is a full read -> decrypt -> mutate -> encrypt ->
atomic replace cycle; no plaintext ever touches the disk.

Binary layout (big-endian):
    magic     : 4 bytes   -> b"CVLT"
    version   : 1 byte    -> 0x01
    t_cost    : u32
    m_cost    : u32  (KiB)
    parallel  : u32
    salt      : 16 bytes
    nonce     : 12 bytes  (fresh for every write)
    ciphertext: remaining bytes (AES-256-GCM over the JSON records, tag last,
                the 33 header bytes before the nonce bound as associated data)

Commands:
  init                     Create the vault with one placeholder record
  ls                       List records (index, domain, username)
  add <domain> <username>  Append a record
  show <index>             Print one record including its secret
  rm <index>               Remove a record
  passwd                   Change passphrase (new salt, optional new Argon2 params)

Security choices:
  - AEAD: AES-256-GCM via cryptography.hazmat, random 96-bit nonce per write
  - Key = Argon2id(SHA3-512(passphrase)) via argon2-cffi, wiped when the command ends
  - Writes: temp file + fsync + os.replace, so a crash never leaves a truncated vault
"""
from __future__ import annotations

import logging
import sys

from credvault.errors import AuthenticationError, VaultError
from credvault.ui.cli import build_parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        args.func(args)
    except AuthenticationError as e:
        print(f"[!] vault unreadable: {e}")
        return 1
    except VaultError as e:
        print(f"[!] {e}")
        return 1
    except ValueError as e:
        print(f"[!] invalid settings: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
