from __future__ import annotations

import json
import os

import pytest
from click.testing import CliRunner

from conftest import FakeTool
from gae_deploy import cli
from gae_deploy.errors import ConfigError, UsageError
from gae_deploy.settings import Settings, load_env_files


@pytest.fixture
def fake_tool(monkeypatch: pytest.MonkeyPatch) -> FakeTool:
    tool = FakeTool(versions=["v1"])
    monkeypatch.setattr(cli, "GcloudTool", lambda path: tool)
    return tool


def _invoke(project_dir, *args: str, input: str | None = None):  # noqa: ANN001
    return CliRunner().invoke(cli.main, ["-C", str(project_dir), *args], input=input)


def test_no_command_is_usage_error(project_dir) -> None:
    result = _invoke(project_dir)

    assert result.exit_code == UsageError.exit_code
    assert "Usage:" in result.output
    assert "UsageError" in result.output


def test_two_commands_is_usage_error(project_dir) -> None:
    result = _invoke(project_dir, "--run", "--test", "--module=app", "--target=staging")

    assert result.exit_code == UsageError.exit_code


def test_unknown_option_gets_failure_banner(project_dir) -> None:
    result = _invoke(project_dir, "--run", "--modul=app", "--target=staging")

    assert result.exit_code == UsageError.exit_code
    assert "Usage:" in result.output
    assert "실패: UsageError" in result.output
    assert "--modul" in result.output


def test_missing_option_value_gets_failure_banner(project_dir) -> None:
    result = _invoke(project_dir, "--run", "--target")

    assert result.exit_code == UsageError.exit_code
    assert "실패: UsageError" in result.output


def test_init_then_init_again(tmp_path) -> None:
    first = _invoke(tmp_path, "--init")

    assert first.exit_code == 0, first.output
    with open(tmp_path / "gae-deploy.json", encoding="utf-8") as f:
        assert len(json.load(f)["targets"]) == 1
    assert (tmp_path / "env_variables.yaml").exists()

    second = _invoke(tmp_path, "--init")

    assert second.exit_code == ConfigError.exit_code
    assert "ConfigError" in second.output


def test_targets_lists_configured_targets(project_dir) -> None:
    result = _invoke(project_dir, "--targets")

    assert result.exit_code == 0, result.output
    assert "## staging" in result.output
    assert "## prod" in result.output


def test_missing_config_exit_code(tmp_path) -> None:
    result = _invoke(tmp_path, "--targets")

    assert result.exit_code == ConfigError.exit_code


def test_test_prints_command(project_dir, fake_tool: FakeTool) -> None:
    result = _invoke(project_dir, "--test", "--module=default", "--target=staging")

    assert result.exit_code == 0, result.output
    assert "--version=v2" in result.output
    assert "[TEST] default:v2" in result.output
    assert fake_tool.executed == []


def test_run_force_deploys(project_dir, fake_tool: FakeTool) -> None:
    result = _invoke(project_dir, "--run", "--module=app", "--target=staging", "-f")

    assert result.exit_code == 0, result.output
    assert "배포 완료: default:v2" in result.output
    assert len(fake_tool.executed) == 1


def test_run_declined_is_not_a_failure(project_dir, fake_tool: FakeTool) -> None:
    result = _invoke(project_dir, "--run", "--module=app", "--target=staging", input="n\n")

    assert result.exit_code == 0, result.output
    assert "취소" in result.output
    assert fake_tool.executed == []


def test_environment_error_exit_code(project_dir, fake_tool: FakeTool) -> None:
    result = _invoke(project_dir, "--run", "--module=app", "--target=remote", "-f")

    assert result.exit_code == 4
    assert "DeployEnvironmentError" in result.output


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("GAE_DEPLOY_CONFIG", "custom.json")
    monkeypatch.setenv("GAE_DEPLOY_GCLOUD", "/opt/sdk/bin/gcloud")

    settings = Settings.from_env(str(tmp_path))

    assert settings.config_path == os.path.join(str(tmp_path), "custom.json")
    assert settings.gcloud_path == "/opt/sdk/bin/gcloud"


def test_dotenv_overrides_config_path(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    # monkeypatch 가 테스트 후 원래 상태로 되돌리도록 먼저 등록해 둔다
    monkeypatch.setenv("GAE_DEPLOY_CONFIG", "placeholder.json")
    (tmp_path / ".env").write_text("GAE_DEPLOY_CONFIG=from-dotenv.json\n", encoding="utf-8")

    load_env_files(str(tmp_path))

    assert Settings.from_env(str(tmp_path)).config_path.endswith("from-dotenv.json")
