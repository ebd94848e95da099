"""
SecureKeychain - Interactive Menu

Main user interface for the keychain.
Features:
- Unlock an existing keychain or create a new one
- Add/retrieve/remove passwords by website
- List stored websites
- Backup/restore the keychain file

Run with:
    securekeychain [--path FILE] [--log-level LEVEL]
    python -m securekeychain.cli
"""

import os
import sys
import getpass
import logging
import argparse
from typing import Optional

from pydantic import ValidationError

from .config import KeychainConfig
from .errors import (
    DecryptionFailure,
    IntegrityViolation,
    KeychainError,
    MalformedKeychain,
    WrongPassword,
)
from .keychain import Keychain
from .storage import KeychainFile


def describe_error(err: Exception) -> str:
    """Turn a keychain/file error into a message for the user."""
    if isinstance(err, WrongPassword):
        return "Wrong master password."
    if isinstance(err, IntegrityViolation):
        return "Keychain file is corrupted or has been tampered with."
    if isinstance(err, MalformedKeychain):
        return "Not a valid keychain file."
    if isinstance(err, DecryptionFailure):
        return "Stored entry could not be decrypted."
    if isinstance(err, FileNotFoundError):
        return f"File not found: {err.filename or err}"
    if isinstance(err, FileExistsError):
        return "A keychain already exists at that location."
    return str(err)


def clear_screen():
    print("\033[2J\033[H", end="")


def pause():
    input("\nPress Enter to continue...")


def ask(prompt: str) -> str:
    """Ask for a non-empty, trimmed value. Returns '' if the user gave none."""
    value = input(prompt).strip()
    if not value:
        print("Value cannot be empty.")
    return value


def prompt_new_password(min_length: int) -> str:
    while True:
        pw = getpass.getpass("Create a master password: ")
        if len(pw) < min_length:
            print(f"Too short (min {min_length} chars).\n")
            continue
        pw2 = getpass.getpass("Confirm your master password: ")
        if pw != pw2:
            print("Passwords don't match.\n")
            continue
        return pw


def unlock_flow(store: KeychainFile, config: KeychainConfig) -> Optional[Keychain]:
    """Open the keychain at store.path, or create it if there is none."""
    try:
        if store.exists():
            password = getpass.getpass("Enter your master password: ")
            keychain = store.open(password)
            print("Keychain loaded successfully.")
        else:
            password = prompt_new_password(config.min_password_length)
            keychain = store.create(password)
            print("New keychain created and saved successfully.")
        return keychain
    except (KeychainError, OSError, ValueError) as e:
        print(f"Failed to initialize keychain: {describe_error(e)}")
        return None


def cmd_add(store: KeychainFile, keychain: Keychain) -> Keychain:
    print("=== Add a Password ===\n")
    website = ask("Website URL or name: ")
    if not website:
        return keychain
    secret = getpass.getpass("Password: ")
    if not secret.strip():
        print("Password cannot be empty.")
        return keychain
    try:
        with store.transaction(keychain):
            keychain.set(website, secret)
        print(f'\nPassword for "{website}" added successfully.')
    except (KeychainError, OSError) as e:
        print(f"Failed to add password: {describe_error(e)}")
    return keychain


def cmd_retrieve(store: KeychainFile, keychain: Keychain) -> Keychain:
    print("=== Retrieve a Password ===\n")
    website = ask("Website URL or name: ")
    if not website:
        return keychain
    try:
        secret = keychain.get(website)
        if secret is None:
            print(f'No password found for "{website}".')
        else:
            print(f'Password for "{website}": {secret}')
    except KeychainError as e:
        print(f"Failed to retrieve password: {describe_error(e)}")
    return keychain


def cmd_remove(store: KeychainFile, keychain: Keychain) -> Keychain:
    print("=== Remove a Password ===\n")
    website = ask("Website URL or name: ")
    if not website:
        return keychain
    try:
        with store.transaction(keychain):
            removed = keychain.remove(website)
        if removed:
            print(f'Password for "{website}" removed successfully.')
        else:
            print(f'No password found for "{website}".')
    except (KeychainError, OSError) as e:
        print(f"Failed to remove password: {describe_error(e)}")
    return keychain


def cmd_list(store: KeychainFile, keychain: Keychain) -> Keychain:
    print("=== Stored Websites ===\n")
    websites = keychain.names()
    if not len(keychain):
        print("No passwords stored.")
    for i, site in enumerate(websites, 1):
        print(f"{i}. {site}")
    unreadable = len(keychain) - len(websites)
    if unreadable:
        print(f"{unreadable} entr{'y' if unreadable == 1 else 'ies'} could not be decrypted.")
    return keychain


def cmd_backup(store: KeychainFile, keychain: Keychain) -> Keychain:
    print("=== Backup Keychain ===\n")
    default = f"{os.path.splitext(store.path)[0]}-backup.json"
    destination = input(f"Backup file [{default}]: ").strip() or default
    try:
        store.backup(destination)
        print(f"\nSaved to: {destination}")
    except OSError as e:
        print(f"Failed to backup keychain: {describe_error(e)}")
    return keychain


def cmd_restore(store: KeychainFile, keychain: Keychain) -> Keychain:
    """Replace the keychain with a backup; keeps the current one on failure."""
    print("=== Restore Keychain ===\n")
    source = ask("Backup file: ")
    if not source:
        return keychain
    password = getpass.getpass("Master password of the backup: ")
    try:
        restored = store.restore(source, password)
    except (KeychainError, OSError, ValueError) as e:
        print(f"Failed to restore keychain: {describe_error(e)}")
        return keychain
    print("Keychain restored successfully.")
    return restored


COMMANDS = {
    '1': ("Add a password", cmd_add),
    '2': ("Retrieve a password", cmd_retrieve),
    '3': ("Remove a password", cmd_remove),
    '4': ("List all websites", cmd_list),
    '5': ("Backup keychain", cmd_backup),
    '6': ("Restore keychain", cmd_restore),
}


def print_menu(store: KeychainFile, keychain: Keychain):
    print("SecureKeychain - Interactive Menu")
    print("=" * 40)
    print(f"Keychain: {store.path}")
    print(f"Entries: {len(keychain)}\n")
    for key, (label, _) in COMMANDS.items():
        print(f" {key}) {label}")
    print(" 0) Exit")


def main_menu(store: KeychainFile, keychain: Keychain):
    while True:
        clear_screen()
        print_menu(store, keychain)
        c = input("\n> ").strip()
        if c == '0':
            print("\nGoodbye!")
            break
        if c not in COMMANDS:
            continue
        clear_screen()
        _, command = COMMANDS[c]
        keychain = command(store, keychain)
        pause()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="securekeychain", description="Local encrypted password keychain")
    parser.add_argument("--path", help="keychain file (default: $KEYCHAIN_PATH or ~/.securekeychain/keychain.json)")
    parser.add_argument("--log-level", help="logging level (default: $KEYCHAIN_LOG_LEVEL or WARNING)")
    args = parser.parse_args(argv)

    try:
        config = KeychainConfig.from_env()
        overrides = {k: v for k, v in (("path", args.path), ("log_level", args.log_level)) if v}
        if overrides:
            config = KeychainConfig(**{**config.model_dump(), **overrides})
    except ValidationError as e:
        print(f"Invalid configuration: {e}")
        return 2

    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")

    print("Welcome to the SecureKeychain CLI")
    store = KeychainFile(config.path)
    try:
        keychain = unlock_flow(store, config)
        if keychain is None:
            return 1
        main_menu(store, keychain)
    except (KeyboardInterrupt, EOFError):
        print("\nExiting...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
