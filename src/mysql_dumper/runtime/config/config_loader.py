"""Load and save config.yaml."""

from pathlib import Path
from typing import Any, Literal, overload

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from mysql_dumper.runtime.config.config_data import ConfigData
from mysql_dumper.runtime.config.config_utils import substitute_env_vars
from mysql_dumper.utils.paths import get_config_path

STR_TAG = "tag:yaml.org,2002:str"


class PlaceholderSafeDumper(yaml.SafeDumper):
    """Quotes ``${...}`` placeholders and digit-only strings.

    Without quoting, ``"3306"`` would reload as an int and a bare
    placeholder could be misread once substituted.
    """


def _represent_str(dumper: yaml.SafeDumper, value: str) -> yaml.ScalarNode:
    quoted = "${" in value or value.isdigit()
    return dumper.represent_scalar(STR_TAG, value, style='"' if quoted else None)


PlaceholderSafeDumper.add_representer(str, _represent_str)


def write_yaml(path: Path, data: Any, *, mode: int | None = None) -> None:
    """Serialize ``data`` next to ``path`` and move it into place.

    Readers never observe a half-written file. ``mode`` is applied before
    the move so the final file is never visible with looser permissions.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    staging = path.with_name(path.name + ".tmp")
    staging.write_text(
        yaml.dump(
            data,
            Dumper=PlaceholderSafeDumper,
            default_flow_style=False,
            sort_keys=False,
            indent=2,
        )
    )
    if mode is not None:
        staging.chmod(mode)
    staging.replace(path)


@overload
def load_config(file_path: Path | None = ..., *, processed: Literal[False]) -> dict[str, Any]: ...


@overload
def load_config(file_path: Path | None = ..., processed: Literal[True] = ...) -> ConfigData: ...


def load_config(
    file_path: Path | None = None, processed: bool = True
) -> ConfigData | dict[str, Any]:
    """Read config.yaml.

    Args:
        file_path: Defaults to ``MYSQL_DUMPER_CONFIG`` or
            ``~/.config/mysql-dumper/config.yaml``
        processed: When False, return the parsed YAML untouched: no .env
            loading, no placeholder substitution, no validation

    Returns:
        ConfigData, or the raw mapping when not processed. A missing file
        means defaults.

    Raises:
        ValueError: Unset required variable, malformed YAML, missing
            ``config`` key or invalid values
    """
    path = file_path or get_config_path()
    if not path.exists():
        logger.debug(f"{path} not found, using default configuration")
        return ConfigData() if processed else {"config": {}}

    text = path.read_text()
    if processed:
        load_dotenv(override=False)
        text = substitute_env_vars(text)

    try:
        document: dict[str, Any] | None = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML in {path}: {e}") from e

    if not processed:
        return document or {"config": {}}

    if not isinstance(document, dict) or "config" not in document:
        raise ValueError(f"Invalid YAML structure in {path}: missing 'config' key")

    logger.debug(f"Loaded configuration from {path}")
    try:
        return ConfigData.model_validate(document["config"] or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {path}: {e}") from e


def save_config(config: ConfigData | dict[str, Any], file_path: Path | None = None) -> None:
    """Write ``config`` to config.yaml, wrapping a model in a ``config:`` key."""
    if isinstance(config, ConfigData):
        config = {"config": config.model_dump(mode="json")}
    write_yaml(file_path or get_config_path(), config)
