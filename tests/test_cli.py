# tests/test_cli.py
import json
import logging

import pytest
from typer.testing import CliRunner

from inventorylock.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def restore_root_handlers():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def base_args(tmp_path):
    return [
        "--config", str(tmp_path / "config.toml"),
        "--db-path", str(tmp_path / "store.db"),
    ]


def invoke(base_args, *args):
    return runner.invoke(app, [*base_args, *args])


def create_product(base_args, *extra):
    result = invoke(base_args, "create", "--name", "Widget", "--stock", "50", "--json", *extra)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)[0]


def test_help():
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "optimistic concurrency control" in result.stdout


def test_create_versioned(base_args):
    product = create_product(base_args)

    assert product["name"] == "Widget"
    assert product["stock"] == 50
    assert product["version"] == 0


def test_create_unversioned(base_args):
    product = create_product(base_args, "--unversioned")

    assert product["version"] is None


def test_show_one_and_all(base_args):
    product = create_product(base_args)

    one = invoke(base_args, "show", product["id"], "--json")
    everything = invoke(base_args, "show", "--json")

    assert one.exit_code == 0
    assert json.loads(one.stdout) == [product]
    assert [p["id"] for p in json.loads(everything.stdout)] == [product["id"]]


def test_show_table(base_args):
    create_product(base_args)

    result = invoke(base_args, "show")

    assert result.exit_code == 0
    assert "Widget" in result.stdout
    assert "50" in result.stdout


def test_show_missing_product(base_args):
    result = invoke(base_args, "show", "00000000-0000-0000-0000-000000000000")

    assert result.exit_code == 1
    assert "not found" in result.output


def test_update_bumps_version(base_args):
    product = create_product(base_args)

    result = invoke(base_args, "update", product["id"], "--stock", "10", "--json")

    assert result.exit_code == 0, result.output
    updated = json.loads(result.stdout)[0]
    assert updated["stock"] == 10
    assert updated["version"] == 1


def test_update_with_stale_expected_version_conflicts(base_args):
    product = create_product(base_args)
    first = invoke(base_args, "update", product["id"], "--stock", "10", "--expected-version", "0")
    assert first.exit_code == 0, first.output

    second = invoke(base_args, "update", product["id"], "--stock", "20", "--expected-version", "0")

    assert second.exit_code == 1
    assert "modified concurrently" in second.output

    shown = json.loads(invoke(base_args, "show", product["id"], "--json").stdout)[0]
    assert shown["stock"] == 10
    assert shown["version"] == 1


def test_versioned_race_on_memory_backend(base_args):
    result = invoke(
        base_args, "--backend", "memory",
        "race", "--stock", "10", "--stock", "20", "--think-time", "0",
    )

    assert result.exit_code == 0, result.output
    assert "versioned store: 1 saved, 1 conflicted" in result.stdout


def test_unversioned_race_loses_an_update(base_args):
    result = invoke(
        base_args, "--backend", "memory",
        "race", "--stock", "10", "--stock", "20", "--think-time", "0", "--unversioned",
    )

    assert result.exit_code == 0, result.output
    assert "unversioned store: 2 saved, 0 conflicted" in result.stdout


def test_race_writer_count_from_settings(base_args):
    result = invoke(
        base_args, "--backend", "memory", "--set", "race.writers=3", "--set", "race.think_time=0",
        "race",
    )

    assert result.exit_code == 0, result.output
    assert "1 saved, 2 conflicted" in result.stdout


def test_invalid_setting_is_reported(base_args):
    result = invoke(base_args, "--set", "race.writers=0", "show")

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_update_rejects_retries_with_expected_version(base_args):
    product = create_product(base_args)

    result = invoke(
        base_args, "update", product["id"], "--stock", "10", "--expected-version", "0", "--retries", "1",
    )

    assert result.exit_code == 2
    assert "--retries" in result.output
    shown = json.loads(invoke(base_args, "show", product["id"], "--json").stdout)[0]
    assert shown["version"] == 0


def test_debug_flag_sets_debug_level(base_args):
    result = invoke(base_args, "--debug", "show", "--json")

    assert result.exit_code == 0, result.output
    assert logging.getLogger().level == logging.DEBUG
