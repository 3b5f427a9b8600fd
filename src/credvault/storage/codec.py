"""Canonical JSON form of the record collection.

The payload is a compact UTF-8 JSON array; every element carries the same
keys in the same order so equal collections encode to equal bytes.
"""
import json

from typing import Any, List

from credvault.errors import FormatError
from credvault.utils.dataModels import Record

REQUIRED_FIELDS = ("domain", "username", "password")
OPTIONAL_FIELDS = ("id", "created_at")


def encode(records: List[Record]) -> bytes:
    """Raises FormatError for anything decode would reject, so it is never sealed."""
    entries = [r.to_dict() for r in records]
    for pos, entry in enumerate(entries):
        _check_entry(pos, entry)
    return json.dumps(entries, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _check_entry(pos: int, obj: Any) -> None:
    if not isinstance(obj, dict):
        raise FormatError(f"record {pos} is not an object")
    for name in REQUIRED_FIELDS:
        if name not in obj:
            raise FormatError(f"record {pos} is missing field '{name}'")
    for name in REQUIRED_FIELDS + OPTIONAL_FIELDS:
        if name in obj and not isinstance(obj[name], str):
            raise FormatError(f"record {pos} field '{name}' must be a string")


def decode(data: bytes) -> List[Record]:
    try:
        obj = json.loads(data.decode("utf-8"))
    except UnicodeDecodeError as err:
        raise FormatError(f"payload is not valid UTF-8: {err}") from err
    except json.JSONDecodeError as err:
        raise FormatError(f"payload is not valid JSON: {err}") from err
    if not isinstance(obj, list):
        raise FormatError(f"expected a JSON array, got {type(obj).__name__}")
    for pos, entry in enumerate(obj):
        _check_entry(pos, entry)
    return [Record.from_dict(entry) for entry in obj]
