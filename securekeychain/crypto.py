"""
SecureKeychain - Cryptography Module

This single file contains ALL cryptographic operations for the keychain.
Nothing in here touches files, prompts the user or logs anything.

Security Architecture:
    1. Master Password + Salt → PBKDF2-HMAC-SHA256 → 64 bytes
       - bytes 0..31  → encryption key (AES-256-GCM)
       - bytes 32..63 → secondary key (reserved, see derive_keys)
    2. Website name → AES-GCM with a FIXED zero IV → lookup key
       (deterministic, so the name can be used as a map key)
    3. Password value → AES-GCM with a RANDOM IV → Record
    4. All entries → canonical JSON → SHA-256 → checksum

Why this is secure (enough):
    - PBKDF2 with 100k iterations slows down guessing the master password
    - AES-256-GCM detects any change to a stored record
    - The checksum detects files that were corrupted or edited
"""

import os
import hmac
import json
import base64
import hashlib
from typing import Dict, NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import DecryptionFailure


# =============================================================================
# Configuration
# =============================================================================

KEY_SIZE = 32            # 256-bit keys
SALT_SIZE = 16           # 128-bit salt
NONCE_SIZE = 12          # 96-bit IV for AES-GCM
TAG_SIZE = 16            # 128-bit authentication tag
CHECKSUM_SIZE = 32       # SHA-256 digest

PBKDF2_ITERATIONS = 100_000


# =============================================================================
# Types
# =============================================================================

class DerivedKeys(NamedTuple):
    """Keys produced by one unlock. Never persisted."""
    encryption_key: bytes
    secondary_key: bytes


class Record(NamedTuple):
    """One encrypted password value: random IV + ciphertext (tag included)."""
    iv: bytes
    ciphertext: bytes


# =============================================================================
# Key Derivation
# =============================================================================

def generate_salt() -> bytes:
    """Random salt for a new keychain."""
    return os.urandom(SALT_SIZE)


def derive_keys(password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> DerivedKeys:
    """
    Derive the keychain keys from the master password using PBKDF2.

    Why PBKDF2-HMAC-SHA256?
    - Every guess costs an attacker `iterations` HMAC computations
    - Available everywhere, so a keychain written by one implementation
      can be opened by another with the same bits

    The output is 64 bytes. The first half is the AES-256 encryption key.
    The second half is the secondary key: it is derived so the layout stays
    stable, but nothing consumes it yet (the checksum is a plain SHA-256).

    Args:
        password: Master password (user's secret)
        salt: 16-byte random salt (stored with the keychain, NOT secret)
        iterations: PBKDF2 rounds. Only published test vectors override this.

    Returns:
        DerivedKeys(encryption_key, secondary_key), 32 bytes each
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=2 * KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    material = kdf.derive(password.encode('utf-8'))
    return DerivedKeys(material[:KEY_SIZE], material[KEY_SIZE:])


# =============================================================================
# Record Encryption (AES-256-GCM, random IV)
# =============================================================================

def encrypt_record(encryption_key: bytes, plaintext: str) -> Record:
    """
    Encrypt one password value with AES-256-GCM.

    A fresh random IV is generated on EVERY call. Reusing an IV with the
    same key would reveal plaintext XORs and let an attacker forge tags.

    Args:
        encryption_key: 32-byte key from derive_keys()
        plaintext: The password to protect

    Returns:
        Record(iv, ciphertext) - ciphertext includes the 16-byte tag
    """
    iv = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(encryption_key).encrypt(iv, plaintext.encode('utf-8'), None)
    return Record(iv, ciphertext)


def decrypt_record(encryption_key: bytes, record: Record) -> str:
    """
    Decrypt and verify one Record.

    Raises:
        DecryptionFailure: If the tag does not verify (tampered record or
            a key derived from a different password), or the IV is not
            NONCE_SIZE bytes
    """
    if len(record.iv) != NONCE_SIZE:
        raise DecryptionFailure(f"Record IV must be {NONCE_SIZE} bytes")
    try:
        plaintext = AESGCM(encryption_key).decrypt(record.iv, record.ciphertext, None)
    except InvalidTag as err:
        raise DecryptionFailure("Record failed authentication") from err
    return plaintext.decode('utf-8')


# =============================================================================
# Name Indexing (AES-256-GCM, FIXED IV)
# =============================================================================

# Only the two functions below may use this IV. Record encryption always
# draws a random one.
_NAME_IV = bytes(NONCE_SIZE)


def lookup_key_for(encryption_key: bytes, name: str) -> str:
    """
    Deterministically encrypt a website name into a lookup key.

    Same (key, name) → same lookup key, which lets get/set/remove find an
    entry without the name ever being stored in plaintext.

    Trade-off:
    - This is NOT semantically secure: equal names give equal lookup keys
    - The fixed IV is safe only because it is used for names and nothing
      else; never call AESGCM with _NAME_IV for any other data

    Returns:
        Base64 text of the name ciphertext (usable as a JSON object key)
    """
    ciphertext = AESGCM(encryption_key).encrypt(_NAME_IV, name.encode('utf-8'), None)
    return encode_bytes(ciphertext)


def name_for(encryption_key: bytes, lookup_key: str) -> str:
    """Recover the website name behind a lookup key."""
    try:
        name = AESGCM(encryption_key).decrypt(_NAME_IV, decode_bytes(lookup_key), None)
    except InvalidTag as err:
        raise DecryptionFailure("Lookup key failed authentication") from err
    return name.decode('utf-8')


# =============================================================================
# Integrity (SHA-256 over canonical entries)
# =============================================================================

def canonical_json(obj) -> bytes:
    """
    Convert a JSON-able object to canonical bytes.

    Format:
    - Keys sorted lexicographically
    - No whitespace (separators=(",", ":"))
    - UTF-8 without escaping non-ASCII
    """
    json_str = json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return json_str.encode('utf-8')


def encode_entries(entries: Dict[str, Record]) -> Dict[str, Dict[str, str]]:
    """Entries as they appear in the persisted document."""
    return {
        lookup_key: {
            "iv": encode_bytes(record.iv),
            "cipherText": encode_bytes(record.ciphertext),
        }
        for lookup_key, record in entries.items()
    }


def canonical_entries(entries: Dict[str, Record]) -> bytes:
    """
    Canonical serialization of the entries mapping.

    Sorting the lookup keys makes the result independent of insertion
    order, so a checksum written by one process verifies in any other.
    The empty mapping is b"{}".
    """
    return canonical_json(encode_entries(entries))


def compute_checksum(entries: Dict[str, Record]) -> bytes:
    """SHA-256 of canonical_entries(entries)."""
    return hashlib.sha256(canonical_entries(entries)).digest()


def verify_checksum(entries: Dict[str, Record], expected: bytes) -> bool:
    """
    Check a stored checksum against the entries.

    Returns:
        True if intact, False if the entries (or the checksum) were changed.
        The caller must refuse to open the keychain on False.
    """
    return hmac.compare_digest(compute_checksum(entries), expected)


# =============================================================================
# Helpers
# =============================================================================

def encode_bytes(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def decode_bytes(text: str) -> bytes:
    """
    Strict base64 decode.

    Raises:
        binascii.Error: On characters outside the base64 alphabet or bad padding
    """
    return base64.b64decode(text, validate=True)
