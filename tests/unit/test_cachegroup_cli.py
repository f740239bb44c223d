"""
cachegroup-schema: CLI routing tests

File: tests/unit/test_cachegroup_cli.py

Purpose
- Validate command routing, stdout payloads, and the exit-code contract.

What this test file should cover
- describe/validate/normalize/upgrade/config commands end to end.
- Exit codes: 0 success, 1 invalid config, 2 usage or engine-config errors, 3 upgrade errors.
- Sensitive attribute values are redacted unless explicitly requested.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import structlog
import yaml

from cachegroup_schema.main import ExitCode, cli_entrypoint
from cachegroup_schema.observability import correlation_scope
from cachegroup_schema.ui.cli import CLIError, build_parser, run_cli

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

_TOKEN = "abcdefghijklmnop1234"


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for name in (
        "CACHEGROUP_ENGINE_TARGET_STATE_VERSION",
        "CACHEGROUP_ENGINE_APPLY_DEFAULTS",
        "CACHEGROUP_OBSERVABILITY_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    structlog.reset_defaults()


def _write_json(path: Path, payload: object) -> str:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _stdout_json(capsys: pytest.CaptureFixture[str]) -> dict[str, object]:
    out = capsys.readouterr().out.strip().splitlines()
    assert len(out) == 1
    parsed = json.loads(out[0])
    assert isinstance(parsed, dict)
    return parsed


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit) as excinfo:
        build_parser().parse_args([])

    assert excinfo.value.code == 2
    assert cli_entrypoint([]) == ExitCode.CONFIG_ERROR


def test_describe_renders_requested_schema_version(capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["describe", "--version", "1", "--format", "json"]) == 0

    payload = _stdout_json(capsys)
    assert payload["version"] == 1
    assert len(payload["attributes"]) == 44  # type: ignore[arg-type]


def test_describe_defaults_to_current_version_as_yaml(capsys: pytest.CaptureFixture[str]) -> None:
    assert run_cli(["describe"]) == 0

    payload = yaml.safe_load(capsys.readouterr().out)
    assert payload["resource_type"] == "replication_group"
    assert payload["version"] == 2
    assert payload["attributes"][-1]["name"] == "auth_token_update_strategy"


def test_validate_reports_success(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "group.yaml"
    path.write_text(
        "replication_group_id: my-group\nmaintenance_window: Sun:05:00-Sun:06:00\n",
        encoding="utf-8",
    )

    assert run_cli(["validate", str(path)]) == 0

    payload = _stdout_json(capsys)
    assert payload == {"schema_version": 2, "valid": True, "violations": []}


def test_validate_reports_conflict_with_exit_code_one(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(
        tmp_path / "group.json",
        {"replication_group_id": "my-group", "auth_token": _TOKEN, "user_group_ids": ["ug-1"]},
    )

    assert cli_entrypoint(["validate", path]) == ExitCode.VALIDATION_FAILED

    captured = capsys.readouterr()
    payload = json.loads(captured.out)
    assert payload["violations"] == [
        {
            "kind": "conflict",
            "attribute": "auth_token",
            "message": "conflicts with 'user_group_ids'; only one of them may be set",
            "related": "user_group_ids",
        }
    ]
    assert _TOKEN not in captured.out
    assert _TOKEN not in captured.err


def test_normalize_canonicalizes_fills_defaults_and_redacts(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(
        tmp_path / "group.json",
        {
            "replication_group_id": "My-Group",
            "maintenance_window": "Sun:05:00-Sun:06:00",
            "auto_minor_version_upgrade": "TRUE",
            "auth_token": _TOKEN,
        },
    )

    assert run_cli(["normalize", path, "--defaults"]) == 0

    payload = _stdout_json(capsys)
    config = payload["config"]
    assert payload["schema_version"] == 2
    assert config == {
        "replication_group_id": "my-group",
        "maintenance_window": "sun:05:00-sun:06:00",
        "auto_minor_version_upgrade": "true",
        "auth_token": "***REDACTED***",
        "engine": "redis",
        "automatic_failover_enabled": False,
        "multi_az_enabled": False,
        "auth_token_update_strategy": "ROTATE",
    }


def test_normalize_refuses_invalid_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(tmp_path / "group.json", {"maintenance_window": "sunday"})

    assert run_cli(["normalize", path]) == 1

    payload = _stdout_json(capsys)
    assert payload["valid"] is False
    assert "config" not in payload


def test_upgrade_sets_rotate_and_redacts_token(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(
        tmp_path / "state.json",
        {"replication_group_id": "my-group", "auth_token": _TOKEN, "port": 6379},
    )

    assert run_cli(["upgrade", path, "--from", "1"]) == 0

    payload = _stdout_json(capsys)
    assert payload == {
        "from_version": 1,
        "to_version": 2,
        "state": {
            "replication_group_id": "my-group",
            "auth_token": "***REDACTED***",
            "port": 6379,
            "auth_token_update_strategy": "ROTATE",
        },
    }


def test_upgrade_unredacted_prints_token(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(tmp_path / "state.json", {"auth_token": _TOKEN})

    assert run_cli(["upgrade", path, "--from", "1", "--to", "2", "--unredacted"]) == 0

    payload = _stdout_json(capsys)
    assert payload["state"] == {"auth_token": _TOKEN, "auth_token_update_strategy": "ROTATE"}


def test_upgrade_of_null_state_document(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "state.json"
    path.write_text("null\n", encoding="utf-8")

    assert run_cli(["upgrade", str(path), "--from", "1"]) == 0

    assert _stdout_json(capsys)["state"] == {"auth_token_update_strategy": "ROTATE"}


@pytest.mark.parametrize(
    ("state", "argv_tail", "message"),
    [
        ({"port": "6379"}, ["--from", "1"], "port: expected int, null, got string"),
        ({}, ["--from", "2", "--to", "1"], "cannot downgrade"),
        ({}, ["--from", "0"], "no upgrade step from schema version 0 to 1"),
    ],
)
def test_upgrade_failures_exit_with_code_three(
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
    state: dict[str, object],
    argv_tail: list[str],
    message: str,
) -> None:
    path = _write_json(tmp_path / "state.json", state)

    assert run_cli(["upgrade", path, *argv_tail]) == ExitCode.UPGRADE_ERROR

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "error: upgrade failed:" in captured.err
    assert message in captured.err


def test_missing_input_and_unknown_version_are_usage_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert run_cli(["validate", str(tmp_path / "missing.yaml")]) == 2
    assert "input file not found" in capsys.readouterr().err

    path = _write_json(tmp_path / "group.json", {"replication_group_id": "my-group"})
    assert run_cli(["validate", path, "--version", "9"]) == 2
    assert "unknown schema version 9; known versions: 1, 2" in capsys.readouterr().err


def test_non_mapping_config_document_is_rejected(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(tmp_path / "group.json", ["replication_group_id"])

    assert run_cli(["validate", path]) == 2
    assert "must hold a mapping" in capsys.readouterr().err


def test_config_command_reflects_env_and_cli_overrides(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("CACHEGROUP_ENGINE_TARGET_STATE_VERSION", "1")

    assert run_cli(["config", "--log-level", "ERROR"]) == 0

    payload = _stdout_json(capsys)
    assert payload["command"] == "config"
    config = payload["config"]
    assert config["engine"]["target_state_version"] == 1  # type: ignore[index]
    assert config["observability"]["log_level"] == "ERROR"  # type: ignore[index]


def test_target_version_from_config_drives_upgrade(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "cachegroup.toml").write_text(
        "[engine]\ntarget_state_version = 1\n", encoding="utf-8"
    )
    path = _write_json(tmp_path / "state.json", {"replication_group_id": "my-group"})

    assert run_cli(["upgrade", path, "--from", "1"]) == 0

    payload = _stdout_json(capsys)
    assert payload["to_version"] == 1
    assert payload["state"] == {"replication_group_id": "my-group"}


def test_invalid_engine_config_exits_with_code_two(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_path = tmp_path / "engine.toml"
    config_path.write_text("[engine]\ntarget_state_version = 5\n", encoding="utf-8")

    assert run_cli(["config", "--config", str(config_path)]) == 2
    assert "engine.target_state_version" in capsys.readouterr().err

    assert run_cli(["config", "--config", str(tmp_path / "missing.toml")]) == 2
    assert "config file not found" in capsys.readouterr().err


def test_logs_go_to_stderr_as_json_lines(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(tmp_path / "group.json", {"replication_group_id": "my-group"})

    assert run_cli(["validate", path, "--log-level", "INFO"]) == 0

    captured = capsys.readouterr()
    records = [json.loads(line) for line in captured.err.splitlines() if line.strip()]
    events = [record["message"] for record in records]
    assert "schema_validation_completed" in events
    validation = records[events.index("schema_validation_completed")]
    assert validation["command"] == "validate"
    assert validation["fields"]["attributes"] == ["replication_group_id"]


def test_cli_error_keeps_type_and_exit_code_through_correlation_scope() -> None:
    with pytest.raises(CLIError) as excinfo, correlation_scope(command="upgrade"):
        raise CLIError("upgrade failed: cannot downgrade", exit_code=3)

    assert excinfo.value.exit_code == 3
    assert str(excinfo.value) == "upgrade failed: cannot downgrade"
    assert excinfo.value.__traceback__ is not None


def test_downgrade_reports_the_real_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = _write_json(tmp_path / "state.json", {})

    assert cli_entrypoint(["upgrade", path, "--from", "2", "--to", "1"]) == ExitCode.UPGRADE_ERROR

    err = capsys.readouterr().err
    assert "cannot downgrade" in err
    assert "super(type, obj)" not in err
    assert "Traceback" not in err
