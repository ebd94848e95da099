"""
SecureKeychain - Error Types

Every failure the keychain core can report. Messages never contain
passwords, keys, website names or stored values.

Not found is NOT an error: get() returns None and remove() returns False.
"""


class KeychainError(Exception):
    """Base class for all keychain failures."""


class MalformedKeychain(KeychainError):
    """Serialized keychain cannot be parsed into salt, entries and checksum."""


class IntegrityViolation(KeychainError):
    """Stored checksum does not match the entries (corruption or tampering)."""


class WrongPassword(KeychainError):
    """Checksum is fine but the derived key cannot decrypt the stored records."""


class DecryptionFailure(KeychainError):
    """AES-GCM tag verification failed for a single record."""
