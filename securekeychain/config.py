"""
Keychain Configuration - validated runtime settings.

Reads settings from environment variables:
    KEYCHAIN_PATH = <path to keychain file>
    KEYCHAIN_MIN_PASSWORD_LENGTH = <integer, minimum length of a NEW master password>
    KEYCHAIN_LOG_LEVEL = DEBUG | INFO | WARNING | ERROR

Cryptographic parameters are not configurable; they live in crypto.py.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("securekeychain.config")

DEFAULT_KEYCHAIN_PATH = os.path.join(os.path.expanduser("~"), ".securekeychain", "keychain.json")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class KeychainConfig(BaseModel):
    """Validated keychain configuration."""

    path: str = Field(default=DEFAULT_KEYCHAIN_PATH, min_length=1)
    min_password_length: int = Field(default=6, ge=1, le=1024)
    log_level: str = Field(default="WARNING")

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: str) -> str:
        """Expand '~' so the CLI and the file layer agree on one location."""
        return os.path.expanduser(v)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in _LOG_LEVELS:
            raise ValueError(f"Unsupported log level: {v}")
        return v

    @classmethod
    def from_env(cls) -> "KeychainConfig":
        """Create KeychainConfig from environment variables.

        Unset variables fall back to the model defaults.

        Returns:
            Populated KeychainConfig instance.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        values = {}
        if "KEYCHAIN_PATH" in os.environ:
            values["path"] = os.environ["KEYCHAIN_PATH"]
        if "KEYCHAIN_MIN_PASSWORD_LENGTH" in os.environ:
            values["min_password_length"] = os.environ["KEYCHAIN_MIN_PASSWORD_LENGTH"]
        if "KEYCHAIN_LOG_LEVEL" in os.environ:
            values["log_level"] = os.environ["KEYCHAIN_LOG_LEVEL"]
        config = cls(**values)
        logger.debug("Keychain config: path=%s", config.path)
        return config
