import os
from pathlib import Path

CONFIG_DIR_ENV = "MYSQL_DUMPER_HOME"


def get_config_dir() -> Path:
    """Get the per-user configuration directory.

    Honors ``MYSQL_DUMPER_HOME`` first, then ``XDG_CONFIG_HOME``, and falls
    back to ``~/.config/mysql-dumper``.

    Returns:
        Path to the configuration directory (not created)
    """
    custom = os.environ.get(CONFIG_DIR_ENV)
    if custom:
        return Path(custom).expanduser()

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg).expanduser() if xdg else Path.home() / ".config"
    return base / "mysql-dumper"


def get_config_path() -> Path:
    """Get the path of config.yaml, honoring ``MYSQL_DUMPER_CONFIG``."""
    custom = os.environ.get("MYSQL_DUMPER_CONFIG")
    if custom:
        return Path(custom).expanduser()
    return get_config_dir() / "config.yaml"
