"""Shared fixtures for mysql-dumper tests."""

import pytest

from mysql_dumper.core.models import ServerProfile
from mysql_dumper.core.registry import ServerRegistry


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config, registry and secrets lookups at a throwaway directory."""
    home = tmp_path / "mysql-dumper-home"
    monkeypatch.setenv("MYSQL_DUMPER_HOME", str(home))
    monkeypatch.setenv("MYSQL_DUMPER_CONFIG", str(home / "config.yaml"))
    monkeypatch.delenv("MYSQL_DUMPER_SECRETS_DIR", raising=False)
    monkeypatch.delenv("MYSQL_DUMPER_SECRET_KEY", raising=False)
    return home


@pytest.fixture
def direct_profile():
    return ServerProfile(
        name="local",
        host="db.internal",
        port=3306,
        username="app",
        password="s3cret",
        database="shop",
    )


@pytest.fixture
def key_profile():
    return ServerProfile(
        name="behind-bastion",
        host="10.0.0.5",
        port=3307,
        username="app",
        password="s3cret",
        ssh={
            "host": "bastion.example.com",
            "port": 2222,
            "username": "deploy",
            "key_path": "/keys/id_ed25519",
        },
    )


@pytest.fixture
def password_profile():
    return ServerProfile(
        name="legacy",
        host="mysql.local",
        username="root",
        ssh={
            "host": "jump.example.com",
            "username": "ops",
            "password": "hunter2",
        },
    )


@pytest.fixture
def registry(tmp_path):
    return ServerRegistry(tmp_path / "servers.yaml")
