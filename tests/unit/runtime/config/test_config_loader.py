"""Unit tests for config_loader module."""

from pathlib import Path

import pytest
import yaml

from mysql_dumper.runtime.config import ConfigData, load_config, save_config, write_yaml
from mysql_dumper.runtime.config.config_utils import substitute_env_vars


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        """A missing config.yaml gives the defaults."""
        config = load_config(tmp_path / "absent.yaml")

        assert config.tunnel.settle_timeout == 10.0
        assert config.tunnel.strict_host_key_checking is False
        assert config.execution.command_timeout is None
        assert config.dump.min_free_disk_mb == 100
        assert config.import_.large_file_warning_mb == 100

    def test_registry_defaults_next_to_config(self, isolated_config):
        """Test that servers.yaml defaults to the config directory."""
        assert ConfigData().registry_path == isolated_config / "servers.yaml"

    def test_reads_values_and_substitutes_env(self, tmp_path, monkeypatch):
        """Test that values are read and ${VAR} substituted."""
        monkeypatch.setenv("TUNNEL_TIMEOUT", "3.5")
        path = tmp_path / "config.yaml"
        path.write_text(
            "config:\n"
            "  tunnel:\n"
            "    settle_timeout: ${TUNNEL_TIMEOUT}\n"
            "    strict_host_key_checking: true\n"
            "  execution:\n"
            "    command_timeout: ${CMD_TIMEOUT:-600}\n"
        )

        config = load_config(path)

        assert config.tunnel.settle_timeout == 3.5
        assert config.tunnel.strict_host_key_checking is True
        assert config.execution.command_timeout == 600

    def test_missing_config_key(self, tmp_path):
        """Test that a file without a config key is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("tunnel: {}\n")

        with pytest.raises(ValueError, match="missing 'config' key"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        """Out-of-range values are reported as invalid configuration."""
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  tunnel:\n    settle_timeout: -1\n")

        with pytest.raises(ValueError, match="Invalid configuration"):
            load_config(path)

    def test_required_variable_with_message(self, tmp_path, monkeypatch):
        """Test that ${VAR:?msg} raises with the message."""
        monkeypatch.delenv("REGISTRY_FILE", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  registry_path: ${REGISTRY_FILE:?set the registry}\n")

        with pytest.raises(ValueError, match="set the registry"):
            load_config(path)

    def test_unprocessed_keeps_placeholders(self, tmp_path):
        """Unprocessed loading leaves placeholders alone."""
        path = tmp_path / "config.yaml"
        path.write_text("config:\n  registry_path: ${HOME}/servers.yaml\n")

        raw = load_config(path, processed=False)

        assert raw["config"]["registry_path"] == "${HOME}/servers.yaml"


class TestSaveConfig:
    def test_round_trip_keeps_placeholders_quoted(self, tmp_path):
        """Test that placeholders and digit strings stay quoted when saved."""
        path = tmp_path / "config.yaml"
        save_config({"config": {"registry_path": "${REGISTRY:-/tmp/s.yaml}", "port": "3306"}}, path)

        content = path.read_text()

        assert '"${REGISTRY:-/tmp/s.yaml}"' in content
        assert '"3306"' in content
        assert yaml.safe_load(content)["config"]["port"] == "3306"

    def test_save_model(self, tmp_path):
        """Test that a model is saved under the config key."""
        path = tmp_path / "config.yaml"
        config = ConfigData(registry_path=Path("/srv/servers.yaml"))

        save_config(config, path)

        assert load_config(path).registry_path == Path("/srv/servers.yaml")


def test_write_yaml_sets_mode(tmp_path):
    """write_yaml applies the requested file mode."""
    path = tmp_path / "nested" / "file.yaml"

    write_yaml(path, {"a": 1}, mode=0o600)

    assert path.stat().st_mode & 0o777 == 0o600
    assert not path.with_suffix(".yaml.tmp").exists()


def test_secret_files_become_variables(tmp_path, monkeypatch):
    """Test that files in the secrets directory become variables."""
    import mysql_dumper.runtime.config.config_utils as config_utils

    secrets = tmp_path / "secrets"
    secrets.mkdir()
    (secrets / "prod_db_password.txt").write_text("from-file\n")
    monkeypatch.setenv("MYSQL_DUMPER_SECRETS_DIR", str(secrets))
    # Registered so the value loaded from the file is removed afterwards
    monkeypatch.setenv("PROD_DB_PASSWORD", "placeholder")
    monkeypatch.delenv("PROD_DB_PASSWORD")
    monkeypatch.setattr(config_utils, "_SECRETS_LOADED", False)

    assert substitute_env_vars("${PROD_DB_PASSWORD}") == "from-file"


def test_secret_env_name():
    """Secret file names map to upper-case variable names."""
    from mysql_dumper.runtime.config.config_utils import secret_env_name

    assert secret_env_name(Path("prod-db.password.txt")) == "PROD_DB_PASSWORD"
    assert secret_env_name(Path("api_key")) == "API_KEY"


def test_unset_variable_is_reported(monkeypatch):
    """Test that an unset ${VAR} is reported by name."""
    monkeypatch.delenv("NOT_THERE", raising=False)

    with pytest.raises(ValueError, match="NOT_THERE is not set"):
        substitute_env_vars("password: ${NOT_THERE}")

    assert substitute_env_vars("${NOT_THERE:-fallback}") == "fallback"
