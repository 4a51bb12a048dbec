import json
import os
from unittest.mock import patch

import pytest

from bgwallet.constants import STORAGE_FILENAME
from bgwallet.main import get_config_options, get_parser, main
from bgwallet.migrations import MIGRATIONS
from bgwallet.types import MigrationDefinition


def test_default_command_is_daemon() -> None:
    options = get_config_options([])
    assert options["cmd"] == "daemon"
    assert "verbose" not in options
    assert "sync_enabled" not in options


def test_global_options() -> None:
    options = get_config_options([ "-D", "/tmp/x", "--port", "9000", "--sync-url",
        "https://sync.example/state", "--no-sync", "-v", "--debug", "migrate" ])
    assert options["cmd"] == "migrate"
    assert options["bgwallet_path"] == "/tmp/x"
    assert options["port"] == 9000
    assert options["sync_url"] == "https://sync.example/state"
    assert options["sync_enabled"] is False
    assert options["debug"] is True
    assert options["verbose"] == "info"


def test_unknown_command_rejected() -> None:
    with pytest.raises(SystemExit):
        get_parser().parse_args([ "frobnicate" ])


@patch.dict(os.environ, {}, clear=True)
def test_migrate_command(tmp_path, capsys) -> None:
    data_dir = str(tmp_path)
    with open(os.path.join(data_dir, STORAGE_FILENAME), "w") as f:
        json.dump({ "version": 0, "data": { "config": { "selected_account": "0xabc" } } }, f)

    assert main([ "-D", data_dir, "migrate" ]) == 0

    latest_version = max(migration.version for migration in MIGRATIONS)
    assert f"State is at version {latest_version}" in capsys.readouterr().out
    with open(os.path.join(data_dir, STORAGE_FILENAME), "r") as f:
        document = json.load(f)
    assert document["version"] == latest_version
    assert document["data"]["preferences"]["selected_address"] == "0xabc"


@patch.dict(os.environ, {}, clear=True)
def test_migrate_command_corrupt_state(tmp_path) -> None:
    data_dir = str(tmp_path)
    with open(os.path.join(data_dir, STORAGE_FILENAME), "w") as f:
        f.write("{ corrupt")
    assert main([ "-D", data_dir, "migrate" ]) == 1


@patch.dict(os.environ, {}, clear=True)
def test_status_without_daemon(tmp_path, capsys) -> None:
    assert main([ "-D", str(tmp_path), "status" ]) == 1
    assert json.loads(capsys.readouterr().out) == { "error": "Daemon not running" }


@patch.dict(os.environ, {}, clear=True)
def test_migrate_command_invalid_migration_list(tmp_path) -> None:
    async def migrate(data):
        return data

    migrations = [ MigrationDefinition(1, migrate), MigrationDefinition(1, migrate) ]
    with patch("bgwallet.main.MIGRATIONS", migrations):
        assert main([ "-D", str(tmp_path), "migrate" ]) == 1
    assert not os.path.exists(os.path.join(str(tmp_path), STORAGE_FILENAME))
