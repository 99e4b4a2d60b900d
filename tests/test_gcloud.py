import json
from typing import List

import pytest

from gae_deploy.commands import build_deploy_command
from gae_deploy.errors import ExternalToolError
from gae_deploy.gcloud import GcloudTool
from gae_deploy.subprocess_utils import RunResult


VERSIONS_JSON = json.dumps(
    [
        {"id": "v1", "service": "default", "project": "p"},
        {"id": "v2-rc1", "service": "default", "project": "p"},
        {"id": "v9", "service": "worker", "project": "p"},
    ]
)


class _Recorder:
    def __init__(self, stdout: str = "") -> None:
        self.stdout = stdout
        self.calls: List[tuple] = []

    def __call__(self, cmd, **kwargs) -> RunResult:  # noqa: ANN001
        self.calls.append((list(cmd), kwargs))
        return RunResult(returncode=0, stdout=self.stdout, stderr="")


def test_list_versions_filters_by_service() -> None:
    run = _Recorder(VERSIONS_JSON)
    tool = GcloudTool("gcloud", run=run)

    assert tool.list_versions("p", "default") == ["v1", "v2-rc1"]
    assert tool.list_versions("p", "worker") == ["v9"]
    assert tool.list_versions("p", "api") == []

    cmd, _ = run.calls[0]
    assert cmd[:4] == ["gcloud", "app", "versions", "list"]
    assert "--project=p" in cmd
    assert "--format=json" in cmd


def test_list_versions_empty_output_is_empty_snapshot() -> None:
    assert GcloudTool(run=_Recorder("")).list_versions("p", "default") == []


@pytest.mark.parametrize("stdout", ["not json", "{\"id\": \"v1\"}"])
def test_list_versions_rejects_unexpected_output(stdout: str) -> None:
    with pytest.raises(ExternalToolError):
        GcloudTool(run=_Recorder(stdout)).list_versions("p", "default")


def test_probe_wraps_failure() -> None:
    def failing_run(cmd, **kwargs) -> RunResult:  # noqa: ANN001, ARG001
        raise ExternalToolError("필요한 명령을 찾을 수 없습니다: gcloud")

    with pytest.raises(ExternalToolError) as excinfo:
        GcloudTool("/missing/gcloud", run=failing_run).probe()

    assert "/missing/gcloud" in str(excinfo.value)


def test_probe_returns_first_line() -> None:
    tool = GcloudTool(run=_Recorder("Google Cloud SDK 470.0.0\ncore 2024.01.01\n"))

    assert tool.probe() == "Google Cloud SDK 470.0.0"


def test_execute_streams_deploy_command() -> None:
    run = _Recorder()
    command = build_deploy_command("p", "v3", ".gae-deploy.app.yaml")

    GcloudTool(run=run).execute(command, cwd="/work")

    cmd, kwargs = run.calls[0]
    assert cmd == command.argv
    assert kwargs == {"cwd": "/work", "stream_output": True}
