import os

import pytest
from pydantic import ValidationError

from securekeychain.config import DEFAULT_KEYCHAIN_PATH, KeychainConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("KEYCHAIN_PATH", "KEYCHAIN_MIN_PASSWORD_LENGTH", "KEYCHAIN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = KeychainConfig.from_env()
    assert config.path == DEFAULT_KEYCHAIN_PATH
    assert config.min_password_length == 6
    assert config.log_level == "WARNING"


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("KEYCHAIN_PATH", str(tmp_path / "k.json"))
    monkeypatch.setenv("KEYCHAIN_MIN_PASSWORD_LENGTH", "12")
    monkeypatch.setenv("KEYCHAIN_LOG_LEVEL", "debug")

    config = KeychainConfig.from_env()
    assert config.path == str(tmp_path / "k.json")
    assert config.min_password_length == 12
    assert config.log_level == "DEBUG"


def test_path_is_expanded():
    config = KeychainConfig(path="~/keychain.json")
    assert config.path == os.path.join(os.path.expanduser("~"), "keychain.json")


@pytest.mark.parametrize("name,value", [
    ("KEYCHAIN_MIN_PASSWORD_LENGTH", "0"),
    ("KEYCHAIN_MIN_PASSWORD_LENGTH", "six"),
    ("KEYCHAIN_LOG_LEVEL", "LOUD"),
    ("KEYCHAIN_PATH", ""),
])
def test_invalid_env(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValidationError):
        KeychainConfig.from_env()
