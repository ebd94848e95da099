"""
SecureKeychain - Keychain Module

This file handles:
- Creating a new keychain from a master password
- Loading a serialized keychain (integrity check + password probe)
- Getting/setting/removing passwords by website name
- Serializing the keychain for storage

It never reads or writes files and never prints. The storage module and
the CLI do that.
"""

import logging
from typing import Dict, List, Optional, Tuple

from . import crypto
from . import serializer
from .crypto import DerivedKeys, Record
from .errors import DecryptionFailure, IntegrityViolation, WrongPassword

logger = logging.getLogger("securekeychain.keychain")


class Keychain:
    """
    In-memory keychain: website name → password, encrypted at rest.

    Usage:
        # Create new keychain
        keychain = Keychain.initialize("master_password")
        keychain.set("example.com", "s3cr3t")
        blob, checksum = keychain.serialize()

        # Later: load it again
        keychain = Keychain.load("master_password", blob)
        keychain.get("example.com")     # -> "s3cr3t"

    There is no lock() - drop the object to forget the keys.

    Concurrency:
        Nothing here is locked. Two interleaved set() → serialize()
        sequences on the same instance can lose an update (the last
        serialize wins for the whole mapping). Callers that share an
        instance between threads must serialize access, e.g. with
        storage.KeychainFile.transaction().
    """

    def __init__(self, salt: bytes, keys: DerivedKeys, entries: Optional[Dict[str, Record]] = None):
        """
        Wrap already-derived keys. Use initialize() or load() instead.

        Args:
            salt: 16-byte keychain salt
            keys: From crypto.derive_keys(password, salt)
            entries: lookup key → Record
        """
        self._salt = salt
        self._keys = keys
        self._entries: Dict[str, Record] = dict(entries or {})
        self._checksum = crypto.compute_checksum(self._entries)

    def __repr__(self) -> str:
        return f"<Keychain entries={len(self._entries)}>"

    # =========================================================================
    # CONSTRUCTORS
    # =========================================================================

    @classmethod
    def initialize(cls, master_password: str) -> "Keychain":
        """
        Create a new, empty keychain.

        A fresh salt is generated here and kept for the life of the keychain.
        """
        _check_password(master_password)
        salt = crypto.generate_salt()
        keys = crypto.derive_keys(master_password, salt)
        logger.debug("Initialized new keychain")
        return cls(salt, keys)

    @classmethod
    def load(cls, master_password: str, blob) -> "Keychain":
        """
        Rebuild a keychain from serialized text.

        Steps:
        1. Parse the blob (MalformedKeychain if it is not a keychain)
        2. Derive keys from the stored salt
        3. Recompute the checksum; refuse to open on mismatch
        4. Probe the password by decrypting the record whose lookup key
           sorts first

        An EMPTY keychain has nothing to probe, so a wrong password is not
        detected here; it only shows up as lookups that never match.

        Raises:
            MalformedKeychain: Blob cannot be parsed
            IntegrityViolation: Checksum mismatch (corrupted or tampered)
            WrongPassword: Checksum fine, but the probe record won't decrypt
        """
        _check_password(master_password)
        salt, entries, checksum = serializer.parse_store(blob)

        if not crypto.verify_checksum(entries, checksum):
            logger.warning("Refusing to open keychain: checksum mismatch (%d entries)", len(entries))
            raise IntegrityViolation("Keychain checksum does not match its entries")

        keys = crypto.derive_keys(master_password, salt)

        if entries:
            probe = entries[min(entries)]
            try:
                crypto.decrypt_record(keys.encryption_key, probe)
            except DecryptionFailure as err:
                logger.info("Keychain password probe failed")
                raise WrongPassword("Master password does not unlock this keychain") from err

        logger.debug("Loaded keychain with %d entries", len(entries))
        return cls(salt, keys, entries)

    # =========================================================================
    # PASSWORD OPERATIONS
    # =========================================================================

    def get(self, name: str) -> Optional[str]:
        """
        Return the password stored for a website, or None if there is none.

        Raises:
            DecryptionFailure: The entry exists but fails authentication
        """
        record = self._entries.get(self._lookup_key(name))
        if record is None:
            return None
        return crypto.decrypt_record(self._keys.encryption_key, record)

    def set(self, name: str, value: str) -> None:
        """Store (or overwrite) the password for a website under a fresh IV."""
        if not isinstance(value, str):
            raise TypeError("Password value must be a string")
        lookup_key = self._lookup_key(name)
        self._entries[lookup_key] = crypto.encrypt_record(self._keys.encryption_key, value)

    def remove(self, name: str) -> bool:
        """
        Delete the entry for a website.

        Returns:
            True if an entry was removed, False if there was none
        """
        return self._entries.pop(self._lookup_key(name), None) is not None

    def names(self) -> List[str]:
        """
        Website names currently stored, sorted.

        Lookup keys that fail authentication are skipped (and counted in
        the log), so one bad entry does not hide the others.
        """
        names = []
        unreadable = 0
        for lookup_key in self._entries:
            try:
                names.append(crypto.name_for(self._keys.encryption_key, lookup_key))
            except DecryptionFailure:
                unreadable += 1
        if unreadable:
            logger.warning("Skipped %d entries whose names could not be decrypted", unreadable)
        return sorted(names)

    def snapshot(self) -> Dict[str, Record]:
        """Copy of the current entries, for rollback()."""
        return dict(self._entries)

    def rollback(self, snapshot: Dict[str, Record]) -> None:
        """Put back the entries captured by snapshot()."""
        self._entries = dict(snapshot)
        self._checksum = crypto.compute_checksum(self._entries)

    def serialize(self, indent: Optional[int] = None) -> Tuple[str, bytes]:
        """
        Recompute the checksum and emit the persisted representation.

        Returns:
            (blob, checksum) - blob is JSON text with salt, entries and checksum
        """
        self._checksum = crypto.compute_checksum(self._entries)
        blob = serializer.dump_store(self._salt, self._entries, self._checksum, indent=indent)
        return blob, self._checksum

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def salt(self) -> bytes:
        return self._salt

    @property
    def checksum(self) -> bytes:
        """Checksum as of the last serialize() (or load/initialize)."""
        return self._checksum

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str) or not name:
            return False
        return self._lookup_key(name) in self._entries

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _lookup_key(self, name: str) -> str:
        if not isinstance(name, str):
            raise TypeError("Website name must be a string")
        if not name:
            raise ValueError("Website name cannot be empty")
        return crypto.lookup_key_for(self._keys.encryption_key, name)


def _check_password(master_password: str) -> None:
    if not isinstance(master_password, str):
        raise TypeError("Master password must be a string")
    if not master_password:
        raise ValueError("Master password cannot be empty")
