"""
SecureKeychain - Local Encrypted Password Keychain

A master password unlocks a JSON file of website → password records.

Key Features:
- Strong crypto: PBKDF2-HMAC-SHA256 (100k rounds) + AES-256-GCM
- Private names: website names are stored only as deterministic ciphertext
- Tamper detection: SHA-256 checksum over all entries, checked on every load
- Clear failures: wrong password, corrupted file and malformed file are
  different errors

Components:
- crypto.py: All cryptographic operations (one file!)
- serializer.py: Keychain <-> JSON text
- keychain.py: The in-memory keychain (initialize/load/get/set/remove/serialize)
- storage.py: Keychain file on disk (atomic saves, transactions, backup/restore)
- config.py: Settings from environment variables
- cli.py: Interactive menu

Usage:
    from securekeychain import Keychain
    keychain = Keychain.initialize("master password")
    keychain.set("example.com", "s3cr3t")
    blob, checksum = keychain.serialize()
"""

from .keychain import Keychain
from .storage import KeychainFile
from .config import KeychainConfig
from .errors import (
    KeychainError,
    MalformedKeychain,
    IntegrityViolation,
    WrongPassword,
    DecryptionFailure,
)

__version__ = "0.1.0"

__all__ = [
    "Keychain",
    "KeychainFile",
    "KeychainConfig",
    "KeychainError",
    "MalformedKeychain",
    "IntegrityViolation",
    "WrongPassword",
    "DecryptionFailure",
]
