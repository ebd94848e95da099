"""
SecureKeychain - Storage Module

Keeps a keychain in a JSON file on disk:
- create/open the keychain file
- save after every change (atomic: temp file + fsync + os.replace)
- transaction(): lock → change → save, one writer at a time
- backup/restore of the whole file

The keychain core never does I/O itself; this is the only module that does.
"""

import os
import shutil
import logging
import tempfile
import threading
from contextlib import contextmanager
from typing import Iterator

from .keychain import Keychain

logger = logging.getLogger("securekeychain.storage")


class KeychainFile:
    """
    A keychain file on disk.

    Usage:
        store = KeychainFile("~/.securekeychain/keychain.json")
        keychain = store.open("master_password") if store.exists() \\
            else store.create("master_password")

        with store.transaction(keychain):
            keychain.set("example.com", "s3cr3t")
        # saved here; if the block raises, nothing is saved and the change is undone

    One KeychainFile should be shared by every thread/handler that touches
    the same path so their writes go through the same lock.
    """

    def __init__(self, path: str):
        self.path = os.path.expanduser(path)
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"<KeychainFile {self.path!r}>"

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def create(self, master_password: str) -> Keychain:
        """
        Create a new, empty keychain and write it to disk.

        Raises:
            FileExistsError: A keychain file is already there
        """
        with self._lock:
            if self.exists():
                raise FileExistsError(f"Keychain already exists: {self.path}")
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            keychain = Keychain.initialize(master_password)
            self.save(keychain)
            logger.info("Created keychain file %s", self.path)
            return keychain

    def open(self, master_password: str) -> Keychain:
        """
        Load the keychain file.

        Raises:
            FileNotFoundError: No keychain at this path
            MalformedKeychain, IntegrityViolation, WrongPassword: see Keychain.load
        """
        with self._lock:
            blob = self._read(self.path)
        keychain = Keychain.load(master_password, blob)
        logger.info("Opened keychain file %s (%d entries)", self.path, len(keychain))
        return keychain

    def save(self, keychain: Keychain) -> None:
        """Serialize the keychain and atomically replace the file."""
        with self._lock:
            blob, _ = keychain.serialize(indent=2)
            _write_atomic(self.path, blob.encode('utf-8'))
        logger.debug("Saved keychain file %s (%d entries)", self.path, len(keychain))

    @contextmanager
    def transaction(self, keychain: Keychain) -> Iterator[Keychain]:
        """
        Hold the file lock across a change and the save that follows it.

        If the block or the save raises, the keychain's entries are rolled
        back to what they were on entry and the error propagates.
        """
        with self._lock:
            snapshot = keychain.snapshot()
            try:
                yield keychain
                self.save(keychain)
            except BaseException:
                keychain.rollback(snapshot)
                raise

    def backup(self, destination: str) -> str:
        """
        Copy the current keychain file to destination.

        Returns:
            The destination path

        Raises:
            FileNotFoundError: There is no keychain file to back up
        """
        destination = os.path.expanduser(destination)
        with self._lock:
            if not self.exists():
                raise FileNotFoundError(f"No keychain file to back up: {self.path}")
            shutil.copyfile(self.path, destination)
        logger.info("Backed up keychain file to %s", destination)
        return destination

    def restore(self, source: str, master_password: str) -> Keychain:
        """
        Replace the keychain file with a backup.

        The backup is fully loaded (checksum + password probe) BEFORE it
        replaces anything, so a bad backup leaves the current file untouched.

        Raises:
            FileNotFoundError: source does not exist
            MalformedKeychain, IntegrityViolation, WrongPassword: see Keychain.load
        """
        blob = self._read(os.path.expanduser(source))
        keychain = Keychain.load(master_password, blob)
        with self._lock:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            _write_atomic(self.path, blob)
        logger.info("Restored keychain file %s from %s", self.path, source)
        return keychain

    @staticmethod
    def _read(path: str) -> bytes:
        with open(path, "rb") as f:
            return f.read()


def _write_atomic(path: str, data: bytes) -> None:
    """Write bytes atomically so a crash never leaves half a keychain."""
    fd, tmp_path = tempfile.mkstemp(
        dir=os.path.dirname(path) or ".", prefix=f".{os.path.basename(path)}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
