"""Encryption of passwords stored in the server registry."""

from __future__ import annotations

import os
from pathlib import Path

from cryptography.fernet import Fernet, InvalidToken
from loguru import logger

from mysql_dumper.core.errors import ConfigError
from mysql_dumper.utils.paths import get_config_dir

SECRET_KEY_ENV = "MYSQL_DUMPER_SECRET_KEY"
KEY_FILE_NAME = "secret.key"
KEY_FILE_MODE = 0o600

ENCRYPTED_PREFIX = "fernet:"


class SecretCipher:
    """Fernet encryption for stored passwords.

    The key is read from ``MYSQL_DUMPER_SECRET_KEY`` or from ``key_path``
    (``<config dir>/secret.key``). The key file is generated with mode 0600
    the first time something is encrypted.

    Encrypted values carry the ``fernet:`` prefix, so plain values and
    ``${VAR}`` placeholders written by hand are still read as they are.
    """

    def __init__(self, key_path: Path | None = None) -> None:
        self.key_path = Path(key_path) if key_path else get_config_dir() / KEY_FILE_NAME
        self._fernet: Fernet | None = None

    @staticmethod
    def is_encrypted(value: str) -> bool:
        return value.startswith(ENCRYPTED_PREFIX)

    def encrypt(self, value: str) -> str:
        """Encrypt ``value``; placeholders and encrypted values pass through."""
        if self.is_encrypted(value) or "${" in value:
            return value
        token = self._cipher(create=True).encrypt(value.encode())
        return ENCRYPTED_PREFIX + token.decode()

    def decrypt(self, value: str) -> str:
        """Decrypt a ``fernet:`` value; anything else is returned unchanged.

        Raises:
            ConfigError: If the key is missing or does not match
        """
        if not self.is_encrypted(value):
            return value
        token = value[len(ENCRYPTED_PREFIX):].encode()
        try:
            return self._cipher(create=False).decrypt(token).decode()
        except InvalidToken as e:
            raise ConfigError(
                "Unable to decrypt a stored password: the secret key differs from "
                "the one it was encrypted with."
            ) from e

    def _cipher(self, *, create: bool) -> Fernet:
        if self._fernet is None:
            key = self._load_key(create)
            try:
                self._fernet = Fernet(key)
            except ValueError as e:
                raise ConfigError(f"Invalid secret key: {e}") from e
        return self._fernet

    def _load_key(self, create: bool) -> bytes:
        from_env = os.getenv(SECRET_KEY_ENV)
        if from_env:
            return from_env.strip().encode()
        if self.key_path.exists():
            return self.key_path.read_bytes().strip()
        if not create:
            raise ConfigError(
                f"Secret key not found at {self.key_path}. "
                f"Restore the key file or set {SECRET_KEY_ENV}."
            )
        return self._create_key()

    def _create_key(self) -> bytes:
        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, KEY_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(key)
        logger.info(f"Generated secret key at {self.key_path}")
        return key
