import datetime as _dt
import os
import sys
import uuid

from pathlib import Path

APP_DIR_NAME = "credvault"
VAULT_FILENAME = "vault.enc"


def new_record_id() -> str:
    return uuid.uuid4().hex


def rel_time_iso(ts: float | None = None) -> str:
    if ts is None:
        now = _dt.datetime.now(_dt.timezone.utc)
    else:
        now = _dt.datetime.fromtimestamp(ts, _dt.timezone.utc)
    return now.replace(microsecond=0, tzinfo=None).isoformat() + "Z"


def config_dir() -> Path:
    """Per-user directory holding the vault file."""
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / APP_DIR_NAME
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / APP_DIR_NAME


def default_vault_path() -> Path:
    return config_dir() / VAULT_FILENAME
