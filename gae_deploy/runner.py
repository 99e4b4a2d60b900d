"""
runner
------

배포 파이프라인.

parse -> load -> validate -> resolve target -> resolve version
-> write manifests -> build command -> confirm -> execute/skip -> clean

각 단계는 PipelineContext 를 받아 새 PipelineContext 를 반환한다.
어느 단계에서든 예외가 나면 그대로 전파되고 (재시도 없음),
임시 manifest 는 어떤 경로로 끝나든 삭제된다.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .args import ParsedOptions, resolve_command
from .commands import DeployCommand, build_deploy_command
from .config import DeployConfig, TargetConfig, init_project, load_config, validate_config
from .errors import ExecutionCancelled, UsageError
from .gcloud import GcloudTool
from .logging_utils import get_logger
from .manifest import ManifestPaths, environment_manifest, written_manifests
from .target import DeploymentRequest, resolve_request, validate_request
from .versioning import resolve_version


logger = get_logger(__name__)


DEPLOY_COMMANDS = ("test", "run")


class DeployOutcome(str, Enum):
    EXECUTED = "executed"
    # test 명령: 명령만 만들고 실행하지 않음
    SKIPPED = "skipped"


@dataclass(frozen=True)
class PipelineContext:
    options: ParsedOptions
    base_dir: str
    config_path: str
    command: str = ""
    config: Optional[DeployConfig] = None
    request: Optional[DeploymentRequest] = None
    descriptor_text: Optional[str] = None
    environment: Optional[Dict[str, Any]] = None
    manifests: Optional[ManifestPaths] = None
    deploy_command: Optional[DeployCommand] = None
    outcome: Optional[DeployOutcome] = None

    @property
    def target_config(self) -> TargetConfig:
        assert self.config is not None and self.request is not None
        return self.config.targets[self.request.target]

    @property
    def force(self) -> bool:
        return self.options.flag("force")


def parse_stage(ctx: PipelineContext) -> PipelineContext:
    command = resolve_command(ctx.options)
    if command not in DEPLOY_COMMANDS:
        raise UsageError(f"--{command} 은(는) 배포 명령이 아닙니다.")
    return replace(ctx, command=command)


def load_stage(ctx: PipelineContext) -> PipelineContext:
    config = load_config(ctx.config_path)
    logger.debug("설정 로드: %s (targets=%s)", config.source, list(config.targets))
    return replace(ctx, config=config)


def validate_stage(ctx: PipelineContext) -> PipelineContext:
    assert ctx.config is not None
    validate_config(ctx.config, ctx.options)
    return ctx


def target_stage(ctx: PipelineContext) -> PipelineContext:
    assert ctx.config is not None
    request = resolve_request(ctx.options)
    descriptor_text = validate_request(request, ctx.config, ctx.base_dir)
    ctx = replace(ctx, request=request, descriptor_text=descriptor_text)
    # gcloud 를 호출하기 전에 environment 문제를 먼저 드러낸다
    return replace(ctx, environment=environment_manifest(ctx.target_config))


def version_stage(ctx: PipelineContext, tool: GcloudTool) -> PipelineContext:
    assert ctx.request is not None
    target = ctx.target_config
    assert target.app_id is not None

    tool.probe()
    snapshot = tool.list_versions(target.app_id, ctx.request.service_id)
    version = resolve_version(target.version, snapshot, ctx.request.label)
    logger.info("배포 버전: %s (service=%s, project=%s)", version, ctx.request.service_id, target.app_id)
    return replace(ctx, request=ctx.request.with_version(version))


def build_stage(ctx: PipelineContext, tool: GcloudTool) -> PipelineContext:
    assert ctx.request is not None and ctx.request.version is not None
    assert ctx.manifests is not None
    target = ctx.target_config
    assert target.app_id is not None

    command = build_deploy_command(
        target.app_id,
        ctx.request.version,
        # 실행 시 cwd 가 base_dir 이므로 파일 이름만 넘긴다
        os.path.basename(ctx.manifests.descriptor),
        tool=tool.path,
        quiet=ctx.force,
    )
    return replace(ctx, deploy_command=command)


def confirm_prompt(ctx: PipelineContext) -> str:
    assert ctx.request is not None
    return (
        f"{ctx.target_config.app_id} 프로젝트에 "
        f"{ctx.request.service_id}:{ctx.request.version} 을(를) 배포합니다. 계속할까요?"
    )


def run_deploy(
    options: ParsedOptions,
    *,
    base_dir: str,
    config_path: str,
    tool: GcloudTool,
    confirm: Callable[[str], bool],
) -> PipelineContext:
    """
    --test / --run 파이프라인을 실행하고 마지막 컨텍스트를 반환한다.

    Raises:
        ExecutionCancelled: --force 없이 실행했고 사용자가 확인을 거절한 경우
        DeployError: 그 외 모든 단계의 실패
    """
    ctx = PipelineContext(options=options, base_dir=base_dir, config_path=config_path)
    for stage in (parse_stage, load_stage, validate_stage, target_stage):
        ctx = stage(ctx)
    ctx = version_stage(ctx, tool)

    assert ctx.request is not None and ctx.environment is not None and ctx.descriptor_text is not None
    with written_manifests(base_dir, ctx.request.module, ctx.environment, ctx.descriptor_text) as paths:
        ctx = build_stage(replace(ctx, manifests=paths), tool)
        assert ctx.deploy_command is not None
        logger.info("배포 명령: %s", ctx.deploy_command)

        if ctx.command == "test":
            return replace(ctx, outcome=DeployOutcome.SKIPPED)

        if not ctx.force and not confirm(confirm_prompt(ctx)):
            raise ExecutionCancelled("배포를 취소했습니다.")

        tool.execute(ctx.deploy_command, cwd=base_dir)
        return replace(ctx, outcome=DeployOutcome.EXECUTED)


def run_targets(options: ParsedOptions, *, config_path: str) -> str:
    config = load_config(config_path)
    validate_config(config, options)
    return list_targets(config)


def list_targets(config: DeployConfig) -> str:
    lines: List[str] = []
    lines.append("# Targets")
    lines.append(f"- config: {config.source}")
    lines.append("")

    for name, target in config.targets.items():
        if target.environment_from is not None:
            env = "environment_from (unsupported)"
        elif target.environment is not None:
            env = f"{len(target.environment)} vars"
        else:
            env = "(none)"
        lines.append(f"## {name}")
        lines.append(f"- app_id: {target.app_id}")
        lines.append(f"- version: {target.version}")
        lines.append(f"- require_label: {str(target.require_label).lower()}")
        lines.append(f"- environment: {env}")
        lines.append("")

    return "\n".join(lines).rstrip()


def run_init(*, base_dir: str, config_path: str) -> List[str]:
    return init_project(base_dir, config_path)
