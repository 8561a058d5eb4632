"""Environment placeholder substitution for config and registry files.

Placeholders may be satisfied by real environment variables or by files in
a secrets directory (``MYSQL_DUMPER_SECRETS_DIR``, else ``<config dir>/secrets``).
"""

import os
import re
from pathlib import Path

from loguru import logger

from mysql_dumper.utils.paths import get_config_dir

_SECRETS_LOADED = False

# Most systems cap a single environment value near 128KB
MAX_ENV_VAR_SIZE = 32768

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_NON_IDENTIFIER = re.compile(r"[^A-Z0-9_]")


def secrets_dir() -> Path:
    custom = os.getenv("MYSQL_DUMPER_SECRETS_DIR")
    return Path(custom).expanduser() if custom else get_config_dir() / "secrets"


def secret_env_name(file_path: Path) -> str:
    """``prod-db.password.txt`` -> ``PROD_DB_PASSWORD``."""
    return _NON_IDENTIFIER.sub("_", file_path.stem.upper())


def _read_secret(file_path: Path) -> str | None:
    try:
        size = file_path.stat().st_size
        if size > MAX_ENV_VAR_SIZE:
            logger.warning(
                f"Skipping secret {file_path.name}: {size} bytes exceeds the "
                f"{MAX_ENV_VAR_SIZE} byte limit for environment values"
            )
            return None
        return file_path.read_text(encoding="utf-8").strip() or None
    except OSError as exc:
        logger.warning(f"Skipping unreadable secret {file_path}: {exc}")
        return None


def _load_secrets() -> None:
    """Export each secrets file as an environment variable, once per process.

    Variables already present in the environment are left alone.
    """
    global _SECRETS_LOADED
    if _SECRETS_LOADED:
        return
    _SECRETS_LOADED = True

    directory = secrets_dir()
    if not directory.is_dir():
        return

    for file_path in sorted(p for p in directory.iterdir() if p.is_file()):
        name = secret_env_name(file_path)
        if not name or name in os.environ:
            continue
        value = _read_secret(file_path)
        if value is not None:
            os.environ[name] = value
            logger.debug(f"Exported secret {file_path.name} as {name}")


def _expand(match: re.Match[str]) -> str:
    expression = match.group(1)

    name, sep, fallback = expression.partition(":-")
    if sep:
        return os.getenv(name, fallback)

    name, sep, message = expression.partition(":?")
    value = os.getenv(name)
    if value is not None:
        return value
    if sep:
        raise ValueError(f"Environment variable {name} is required: {message}")
    raise ValueError(f"Environment variable {name} is not set")


def substitute_env_vars(text: str) -> str:
    """Replace ``${...}`` placeholders in ``text``.

    ``${NAME}`` must be set, ``${NAME:-fallback}`` falls back when unset and
    ``${NAME:?message}`` fails with ``message`` when unset.

    Raises:
        ValueError: For a required variable that is not set
    """
    _load_secrets()
    return _PLACEHOLDER.sub(_expand, text)
