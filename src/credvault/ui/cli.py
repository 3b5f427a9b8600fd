import argparse
import getpass
import os

from contextlib import contextmanager
from typing import Iterator

from credvault.config import PASSPHRASE_ENV, VaultConfig
from credvault.errors import StorageError
from credvault.storage.vault import VaultFile
from credvault.utils.core import RecordStore, open_key
from credvault.utils.maintain import rotate_passphrase


def resolve_passphrase(args: argparse.Namespace, confirm: bool = False) -> str:
    if args.passphrase is not None:
        return args.passphrase
    from_env = os.environ.get(PASSPHRASE_ENV)
    if from_env:
        return from_env
    passphrase = getpass.getpass("Passphrase: ")
    if confirm and getpass.getpass("Repeat passphrase: ") != passphrase:
        raise SystemExit("[!] Passphrases do not match")
    return passphrase


def load_config(args: argparse.Namespace) -> VaultConfig:
    return VaultConfig.from_env(
        vault_path=args.vault,
        t_cost=getattr(args, "t", None),
        m_cost=getattr(args, "m", None),
        parallelism=getattr(args, "p", None),
    )


@contextmanager
def open_store(args: argparse.Namespace, create: bool = False) -> Iterator[RecordStore]:
    """Yield a RecordStore for the configured vault; the session key is wiped on exit."""
    config = load_config(args)
    vault = VaultFile(config.vault_path)
    if not create and not vault.exists():
        raise StorageError(f"no vault at {vault.path}; run 'credvault init' first")
    key = open_key(vault, resolve_passphrase(args, confirm=create and not vault.exists()), config.kdf)
    with key:
        yield RecordStore(vault, key, allow_empty=config.allow_empty)


def cmd_init(args: argparse.Namespace) -> None:
    with open_store(args, create=True) as store:
        if store.initialize():
            print(f"[+] Initialized vault at {store.vault.path}")
        else:
            print(f"[=] Vault already exists at {store.vault.path}")


def cmd_ls(args: argparse.Namespace) -> None:
    with open_store(args) as store:
        records = store.list()
    if not records:
        print("(empty)")
        return
    for i, r in enumerate(records):
        print(f"{i}\t{r.domain}\t{r.username}")


def cmd_add(args: argparse.Namespace) -> None:
    with open_store(args) as store:
        secret = args.secret if args.secret is not None else getpass.getpass("Secret: ")
        records = store.add(args.domain, args.username, secret)
    print(f"[+] Added {args.domain} at index {len(records) - 1}")


def cmd_show(args: argparse.Namespace) -> None:
    with open_store(args) as store:
        r = store.get_at(args.index)
    print(f"domain:   {r.domain}")
    print(f"username: {r.username}")
    print(f"password: {r.secret}")
    print(f"id:       {r.id}")
    print(f"created:  {r.created_at}")


def cmd_rm(args: argparse.Namespace) -> None:
    with open_store(args) as store:
        records, selected = store.remove_at(args.index)
    print(f"[+] Removed index {args.index}; {len(records)} left, selection -> {selected}")


def cmd_passwd(args: argparse.Namespace) -> None:
    with open_store(args) as store:
        new_passphrase = args.new_passphrase
        if new_passphrase is None:
            new_passphrase = getpass.getpass("New passphrase: ")
            if getpass.getpass("Repeat new passphrase: ") != new_passphrase:
                raise SystemExit("[!] Passphrases do not match")
        new_key = rotate_passphrase(store.vault, store.key, new_passphrase, args.t, args.m, args.p)
        new_key.wipe()
    print("[+] Passphrase changed.")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="credvault", description="Local encrypted credential vault")
    p.add_argument("--vault", help="Path to the vault file (default: $CREDVAULT_PATH or per-user config dir)")
    p.add_argument("--passphrase", help=f"Vault passphrase (default: ${PASSPHRASE_ENV} or prompt)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_init = sub.add_parser("init", help="Create the vault if it does not exist")
    p_init.add_argument("-t", type=int, help="Argon2 time cost (iterations)")
    p_init.add_argument("-m", type=int, help="Argon2 memory (KiB)")
    p_init.add_argument("-p", type=int, help="Argon2 parallelism")
    p_init.set_defaults(func=cmd_init)

    p_ls = sub.add_parser("ls", help="List records")
    p_ls.set_defaults(func=cmd_ls)

    p_add = sub.add_parser("add", help="Append a record")
    p_add.add_argument("domain")
    p_add.add_argument("username")
    p_add.add_argument("--secret", help="Secret to store (prompted for when omitted)")
    p_add.set_defaults(func=cmd_add)

    p_show = sub.add_parser("show", help="Show one record with its secret")
    p_show.add_argument("index", type=int)
    p_show.set_defaults(func=cmd_show)

    p_rm = sub.add_parser("rm", help="Remove a record by index")
    p_rm.add_argument("index", type=int)
    p_rm.set_defaults(func=cmd_rm)

    p_pw = sub.add_parser("passwd", help="Change the passphrase and/or Argon2 params")
    p_pw.add_argument("--new-passphrase", help="New passphrase (prompted for when omitted)")
    p_pw.add_argument("-t", type=int, help="New Argon2 time cost (iterations)")
    p_pw.add_argument("-m", type=int, help="New Argon2 memory (KiB)")
    p_pw.add_argument("-p", type=int, help="New Argon2 parallelism")
    p_pw.set_defaults(func=cmd_passwd)

    return p
