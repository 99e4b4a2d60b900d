"""
commands
--------

최종 `gcloud app deploy` 호출을 조립한다. 부수효과 없음.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class DeployCommand:
    tool: str
    args: Tuple[str, ...]

    @property
    def argv(self) -> list[str]:
        return [self.tool, *self.args]

    def __str__(self) -> str:
        return shlex.join(self.argv)


def build_deploy_command(
    project_id: str,
    version: str,
    descriptor_path: str,
    *,
    tool: str = "gcloud",
    quiet: bool = False,
) -> DeployCommand:
    args = [
        "app",
        "deploy",
        descriptor_path,
        f"--project={project_id}",
        f"--version={version}",
        # 트래픽 전환은 배포 후 수동으로 한다
        "--no-promote",
        "--format=json",
    ]
    if quiet:
        args.append("--quiet")
    return DeployCommand(tool=tool, args=tuple(args))
