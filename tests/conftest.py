"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 gae_deploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, List, Optional

import pytest


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


APP_YAML = """runtime: python312
service: default
includes:
  - env_variables.yaml
"""


def write_config(base_dir, data: Dict[str, Any], name: str = "gae-deploy.json") -> str:
    path = os.path.join(str(base_dir), name)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f)
    return path


def basic_config() -> Dict[str, Any]:
    return {
        "targets": {
            "staging": {
                "app_id": "my-project-staging",
                "version": "v++",
                "environment": {"APP_ENV": "staging", "FEATURES": "{\"beta\": true}"},
            },
            "prod": {
                "app_id": "my-project-prod",
                "version": "release",
                "require_label": True,
                "environment": {"APP_ENV": "prod"},
            },
            "remote": {
                "app_id": "my-project-remote",
                "environment_from": {"bucket": "gs://somewhere/env.json"},
            },
        }
    }


class FakeTool:
    """GcloudTool 대역. 실행 시점의 임시 파일 내용을 기록한다."""

    def __init__(self, versions: Optional[List[str]] = None, path: str = "gcloud", fail: Exception | None = None) -> None:
        self.path = path
        self.versions = list(versions or [])
        self.fail = fail
        self.probed = False
        self.listed: List[tuple] = []
        self.executed: List[Any] = []
        self.seen_files: Dict[str, str] = {}

    def probe(self) -> str:
        self.probed = True
        return "Google Cloud SDK 999.0.0"

    def list_versions(self, project_id: str, service_id: str) -> List[str]:
        self.listed.append((project_id, service_id))
        return list(self.versions)

    def execute(self, command, cwd=None):  # noqa: ANN001
        self.executed.append(command)
        for name in os.listdir(cwd):
            if name.startswith(".gae-deploy."):
                with open(os.path.join(cwd, name), "r", encoding="utf-8") as f:
                    self.seen_files[name] = f.read()
        if self.fail is not None:
            raise self.fail
        from gae_deploy.subprocess_utils import RunResult

        return RunResult(returncode=0, stdout="[]", stderr="")


@pytest.fixture
def project_dir(tmp_path):
    (tmp_path / "app.yaml").write_text(APP_YAML, encoding="utf-8")
    (tmp_path / "worker.yaml").write_text(APP_YAML.replace("default", "worker"), encoding="utf-8")
    write_config(tmp_path, basic_config())
    return tmp_path
