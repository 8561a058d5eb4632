"""YAML-backed store of named server profiles.

The registry file lives next to config.yaml by default and is rewritten
atomically (temp file, then rename) with mode 0600 on every change.
The database and SSH passwords are stored encrypted (see ``SecretCipher``).
String values may hold ``${ENV_VAR}`` placeholders; they are kept verbatim
in the file and resolved only when a profile is read.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from mysql_dumper.core.crypto import SecretCipher
from mysql_dumper.core.errors import ConfigError, ProfileNotFound, ValidationError
from mysql_dumper.core.models import ServerProfile
from mysql_dumper.runtime.config.config_loader import write_yaml
from mysql_dumper.runtime.config.config_utils import substitute_env_vars

REGISTRY_FILE_MODE = 0o600

SENSITIVE_FIELDS = ("password",)
SENSITIVE_SSH_FIELDS = ("password", "key_path")

_FIELD_ORDER = tuple(ServerProfile.model_fields)


def _resolve(value: Any) -> Any:
    if isinstance(value, str):
        return substitute_env_vars(value)
    if isinstance(value, dict):
        return {k: _resolve(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v) for v in value]
    return value


def _clean(data: dict[str, Any]) -> dict[str, Any]:
    """Keep known profile fields in declaration order, dropping empty values."""
    cleaned: dict[str, Any] = {}
    for key in _FIELD_ORDER:
        value = data.get(key)
        if value is None or value == {}:
            continue
        if key == "ssh" and isinstance(value, dict):
            value = {k: v for k, v in value.items() if v is not None and v != ""}
            if not value:
                continue
        cleaned[key] = value
    return cleaned


def _map_secrets(entry: dict[str, Any], fn: Callable[[str], str]) -> dict[str, Any]:
    """Copy of ``entry`` with ``fn`` applied to the stored passwords."""
    mapped = dict(entry)
    if isinstance(mapped.get("password"), str):
        mapped["password"] = fn(mapped["password"])
    ssh = mapped.get("ssh")
    if isinstance(ssh, dict) and isinstance(ssh.get("password"), str):
        mapped["ssh"] = {**ssh, "password": fn(ssh["password"])}
    return mapped


def _format_errors(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'profile'}: {err['msg']}"
        for err in exc.errors()
    )


class ServerRegistry:
    """Create, read, update and delete server profiles.

    Every operation re-reads the file, so separate processes see each
    other's changes.
    """

    def __init__(self, path: Path, cipher: SecretCipher | None = None):
        self.path = Path(path).expanduser()
        self.cipher = cipher or SecretCipher()

    # -- persistence ----------------------------------------------------

    def _read(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []

        try:
            loaded = yaml.safe_load(self.path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing server registry {self.path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Unable to read server registry {self.path}: {e}") from e

        if not loaded:
            return []
        servers = loaded.get("servers") if isinstance(loaded, dict) else None
        if not isinstance(servers, list):
            raise ConfigError(
                f"Invalid server registry {self.path}: missing 'servers' list"
            )
        return [dict(entry) for entry in servers if isinstance(entry, dict)]

    def _write(self, entries: list[dict[str, Any]]) -> None:
        sealed = [_map_secrets(entry, self.cipher.encrypt) for entry in entries]
        write_yaml(self.path, {"servers": sealed}, mode=REGISTRY_FILE_MODE)
        logger.debug(f"Saved {len(entries)} server(s) to {self.path}")

    def _open(self, entry: dict[str, Any]) -> dict[str, Any]:
        return _map_secrets(entry, self.cipher.decrypt)

    def _build(self, entry: dict[str, Any]) -> ServerProfile:
        label = entry.get("name", "?")
        data = self._open(entry)
        try:
            return ServerProfile.model_validate(_resolve(data))
        except PydanticValidationError as e:
            raise ConfigError(
                f"Invalid server '{label}' in registry: {_format_errors(e)}"
            ) from e
        except ValueError as e:
            # Unset ${VAR} placeholder
            raise ConfigError(f"Invalid server '{label}' in registry: {e}") from e

    def _check(self, data: dict[str, Any]) -> ServerProfile:
        data = self._open(data)
        try:
            return ServerProfile.model_validate(_resolve(data))
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid server configuration: {_format_errors(e)}") from e
        except ValueError as e:
            raise ValidationError(str(e)) from e

    @staticmethod
    def _index(entries: list[dict[str, Any]], name: str) -> int | None:
        for i, entry in enumerate(entries):
            if entry.get("name") == name:
                return i
        return None

    # -- queries --------------------------------------------------------

    def all(self) -> list[ServerProfile]:
        return [self._build(entry) for entry in self._read()]

    def find_by_name(self, name: str) -> ServerProfile | None:
        entries = self._read()
        index = self._index(entries, name)
        return None if index is None else self._build(entries[index])

    def get(self, name: str) -> ServerProfile:
        """Like ``find_by_name`` but raises ProfileNotFound."""
        profile = self.find_by_name(name)
        if profile is None:
            raise ProfileNotFound(name)
        return profile

    def get_default(self) -> ServerProfile | None:
        for entry in self._read():
            if entry.get("is_default"):
                return self._build(entry)
        return None

    def exists(self, name: str) -> bool:
        return self._index(self._read(), name) is not None

    def names(self) -> list[str]:
        return [str(entry.get("name")) for entry in self._read()]

    def count(self) -> int:
        return len(self._read())

    # -- mutations ------------------------------------------------------

    def create(self, data: dict[str, Any] | ServerProfile) -> ServerProfile:
        """Add a profile.

        Raises:
            ValidationError: If the data is invalid or the name is taken
        """
        if isinstance(data, ServerProfile):
            data = data.model_dump(mode="json")
        raw = _clean(data)
        profile = self._check(raw)

        entries = self._read()
        if self._index(entries, profile.name) is not None:
            raise ValidationError(f"Server '{profile.name}' already exists.")

        raw["name"] = profile.name
        if profile.is_default:
            for entry in entries:
                entry.pop("is_default", None)
        entries.append(raw)
        self._write(entries)
        logger.info(f"Created server {profile.name}")
        return profile

    def update(self, name: str, changes: dict[str, Any]) -> ServerProfile:
        """Merge ``changes`` into the named profile.

        ``ssh: None`` removes the tunnel configuration. Renaming is allowed
        when the new name is free.

        Raises:
            ProfileNotFound: If ``name`` does not exist
            ValidationError: If the merged profile is invalid or the new name is taken
        """
        entries = self._read()
        index = self._index(entries, name)
        if index is None:
            raise ProfileNotFound(name)

        merged = {**entries[index], **changes}
        if "ssh" in changes and changes["ssh"] is None:
            merged.pop("ssh", None)
        raw = _clean(merged)
        profile = self._check(raw)

        other = self._index(entries, profile.name)
        if other is not None and other != index:
            raise ValidationError(f"Server '{profile.name}' already exists.")

        raw["name"] = profile.name
        if profile.is_default:
            for i, entry in enumerate(entries):
                if i != index:
                    entry.pop("is_default", None)
        entries[index] = raw
        self._write(entries)
        logger.info(f"Updated server {name}")
        return profile

    def delete(self, name: str) -> bool:
        """Remove a profile. Returns False when it did not exist."""
        entries = self._read()
        index = self._index(entries, name)
        if index is None:
            return False
        del entries[index]
        self._write(entries)
        logger.info(f"Deleted server {name}")
        return True

    def set_default(self, name: str) -> ServerProfile:
        """Make ``name`` the only default profile, in a single file replace."""
        entries = self._read()
        index = self._index(entries, name)
        if index is None:
            raise ProfileNotFound(name)

        for i, entry in enumerate(entries):
            if i == index:
                entry["is_default"] = True
            else:
                entry.pop("is_default", None)
        self._write(entries)
        logger.info(f"Default server is now {name}")
        return self._build(entries[index])

    # -- import / export ------------------------------------------------

    def export(self, name: str, include_sensitive: bool = False) -> dict[str, Any]:
        """Profile as a plain dict, placeholders left unresolved.

        Passwords and the SSH key path are omitted unless
        ``include_sensitive`` is set, in which case passwords are decrypted.
        """
        entries = self._read()
        index = self._index(entries, name)
        if index is None:
            raise ProfileNotFound(name)

        data = dict(entries[index])
        data.setdefault("is_default", False)
        if include_sensitive:
            return self._open(data)

        for field in SENSITIVE_FIELDS:
            data.pop(field, None)
        if isinstance(data.get("ssh"), dict):
            data["ssh"] = {
                k: v for k, v in data["ssh"].items() if k not in SENSITIVE_SSH_FIELDS
            }
        return data

    def duplicate(self, name: str, new_name: str) -> ServerProfile:
        """Copy a profile, credentials included, under ``new_name``. The copy is never default."""
        data = self.export(name, include_sensitive=True)
        data["name"] = new_name
        data["is_default"] = False
        return self.create(data)

    @staticmethod
    def validate(data: dict[str, Any]) -> dict[str, str]:
        """Check raw profile data, returning ``{field: message}`` for each problem."""
        errors: dict[str, str] = {}

        name = data.get("name")
        if not name:
            errors["name"] = "Server name is required"
        elif len(str(name)) > 255:
            errors["name"] = "Server name must not exceed 255 characters"

        if not data.get("host"):
            errors["host"] = "Host is required"

        port_error = _port_error(data.get("port"), "Port")
        if port_error:
            errors["port"] = port_error

        if not data.get("username"):
            errors["username"] = "Username is required"

        ssh = data.get("ssh") or {}
        if ssh:
            ssh_port_error = _port_error(ssh.get("port"), "SSH port")
            if ssh_port_error:
                errors["ssh_port"] = ssh_port_error
            if not ssh.get("host"):
                errors["ssh_host"] = "SSH host is required when SSH is configured"
            if not ssh.get("username"):
                errors["ssh_username"] = "SSH username is required when SSH host is provided"
            if not ssh.get("password") and not ssh.get("key_path"):
                errors["ssh_auth"] = (
                    "Either SSH password or SSH key path is required when SSH host is provided"
                )
            elif ssh.get("password") and ssh.get("key_path"):
                errors["ssh_auth"] = "Configure either an SSH password or an SSH key path, not both"

        return errors

    def import_profile(self, data: dict[str, Any]) -> ServerProfile:
        """Validate then create a profile from exported data.

        Raises:
            ValidationError: Listing every problem found by ``validate``
        """
        errors = self.validate(data)
        if errors:
            raise ValidationError(
                "Invalid server configuration: " + ", ".join(errors.values())
            )
        return self.create(data)


def _port_error(value: Any, label: str) -> str | None:
    if value is None or value == "":
        return None
    try:
        port = int(value)
    except (TypeError, ValueError):
        return f"{label} must be a number"
    if port < 1 or port > 65535:
        return f"{label} must be between 1 and 65535"
    return None
