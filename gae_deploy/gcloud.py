"""
gcloud
------

배포 도구(gcloud CLI)와의 경계.
존재 확인, 배포된 버전 목록 조회, 실제 배포 실행만 담당한다.
"""

from __future__ import annotations

import json
from typing import Callable, List, Optional

from .commands import DeployCommand
from .errors import ExternalToolError
from .logging_utils import get_logger
from .subprocess_utils import RunResult, run_command


logger = get_logger(__name__)


class GcloudTool:
    def __init__(self, path: str = "gcloud", run: Callable[..., RunResult] = run_command) -> None:
        self.path = path
        self._run = run

    def probe(self) -> str:
        """gcloud 가 실행 가능한지 확인하고 버전 출력 첫 줄을 반환한다."""
        try:
            result = self._run([self.path, "--version"])
        except ExternalToolError as e:
            raise ExternalToolError(
                f"gcloud 를 실행할 수 없습니다 ({self.path}). Google Cloud SDK 설치/PATH 를 확인하세요.\n{e}"
            ) from e
        first_line = (result.stdout.strip().splitlines() or [""])[0]
        logger.debug("gcloud 확인: %s", first_line)
        return first_line

    def list_versions(self, project_id: str, service_id: str) -> List[str]:
        """
        프로젝트에 배포된 버전 중 service_id 서비스의 버전 ID 목록을 반환한다.

        --service 필터 대신 전체 목록을 받아 직접 거른다.
        (아직 한 번도 배포되지 않은 서비스를 지정하면 gcloud 가 오류를 내기 때문)
        """
        cmd = [
            self.path,
            "app",
            "versions",
            "list",
            f"--project={project_id}",
            "--format=json",
            "--quiet",
        ]
        result = self._run(cmd)
        try:
            entries = json.loads(result.stdout or "[]")
        except json.JSONDecodeError as e:
            raise ExternalToolError(f"gcloud app versions list 출력을 해석할 수 없습니다: {e}") from e
        if not isinstance(entries, list):
            raise ExternalToolError("gcloud app versions list 출력이 JSON 배열이 아닙니다.")

        versions = [
            str(entry["id"])
            for entry in entries
            if isinstance(entry, dict) and entry.get("service") == service_id and "id" in entry
        ]
        logger.debug("배포된 버전 (%s/%s): %s", project_id, service_id, versions)
        return versions

    def execute(self, command: DeployCommand, cwd: Optional[str] = None) -> RunResult:
        return self._run(command.argv, cwd=cwd, stream_output=True)
