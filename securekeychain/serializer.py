"""
SecureKeychain - Serializer

Converts between the in-memory keychain and its persisted JSON text:

    {
      "salt": "<base64, 16 bytes>",
      "entries": {
        "<base64 lookup key>": {"iv": "<base64, 12 bytes>", "cipherText": "<base64>"}
      },
      "checksum": "<base64, 32 bytes>"
    }

parse_store() only checks SHAPE. Whether the checksum matches is the
keychain's job (see Keychain.load).
"""

import json
import binascii
from typing import Dict, Optional, Tuple

from . import crypto
from .crypto import Record
from .errors import MalformedKeychain


def dump_store(
    salt: bytes,
    entries: Dict[str, Record],
    checksum: bytes,
    indent: Optional[int] = None
) -> str:
    """
    Build the persisted text for a keychain.

    Args:
        salt: Keychain salt
        entries: lookup key → Record
        checksum: compute_checksum(entries)
        indent: Pretty-print width (the file layer uses 2), None for compact

    Returns:
        JSON text
    """
    document = {
        "salt": crypto.encode_bytes(salt),
        "entries": crypto.encode_entries(entries),
        "checksum": crypto.encode_bytes(checksum),
    }
    return json.dumps(document, indent=indent, sort_keys=True)


def parse_store(blob) -> Tuple[bytes, Dict[str, Record], bytes]:
    """
    Parse persisted text back into (salt, entries, checksum).

    Raises:
        MalformedKeychain: Not JSON, missing fields, wrong types, bad base64,
            or salt/IV/checksum of the wrong length
    """
    if isinstance(blob, (bytes, bytearray)):
        try:
            blob = blob.decode('utf-8')
        except UnicodeDecodeError as err:
            raise MalformedKeychain("Keychain is not UTF-8 text") from err
    if not isinstance(blob, str):
        raise MalformedKeychain("Keychain must be text")

    try:
        document = json.loads(blob)
    except json.JSONDecodeError as err:
        raise MalformedKeychain(f"Keychain is not valid JSON (line {err.lineno})") from err

    if not isinstance(document, dict):
        raise MalformedKeychain("Keychain document must be a JSON object")
    missing = [field for field in ("salt", "entries", "checksum") if field not in document]
    if missing:
        raise MalformedKeychain(f"Keychain is missing field(s): {', '.join(missing)}")

    salt = _decode_field(document["salt"], "salt", crypto.SALT_SIZE)
    checksum = _decode_field(document["checksum"], "checksum", crypto.CHECKSUM_SIZE)

    raw_entries = document["entries"]
    if not isinstance(raw_entries, dict):
        raise MalformedKeychain("Field 'entries' must be a JSON object")

    entries = {}
    for lookup_key, raw_record in raw_entries.items():
        _decode_field(lookup_key, "lookup key")
        if not isinstance(raw_record, dict) or set(raw_record) != {"iv", "cipherText"}:
            raise MalformedKeychain("Each entry must have exactly 'iv' and 'cipherText'")
        entries[lookup_key] = Record(
            iv=_decode_field(raw_record["iv"], "iv", crypto.NONCE_SIZE),
            ciphertext=_decode_field(raw_record["cipherText"], "cipherText"),
        )

    return salt, entries, checksum


def _decode_field(value, field: str, size: int = None) -> bytes:
    if not isinstance(value, str):
        raise MalformedKeychain(f"Field '{field}' must be a base64 string")
    try:
        data = crypto.decode_bytes(value)
    except (binascii.Error, ValueError) as err:
        raise MalformedKeychain(f"Field '{field}' is not valid base64") from err
    if size is not None and len(data) != size:
        raise MalformedKeychain(f"Field '{field}' must be {size} bytes, got {len(data)}")
    return data
