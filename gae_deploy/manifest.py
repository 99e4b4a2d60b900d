"""
manifest
--------

타겟의 environment 로부터 App Engine env_variables include 파일을 만들고,
모듈 descriptor 의 include 자리표시자를 생성된 파일 경로로 치환한다.

두 파일 모두 작업 디렉토리의 고정된 임시 경로에 쓰이며,
배포가 끝나면(성공/취소/실패 모두) 삭제된다.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Mapping, Optional

import yaml

from .config import ENV_INCLUDE_RE, TargetConfig
from .errors import DeployEnvironmentError
from .logging_utils import get_logger


logger = get_logger(__name__)


# descriptor 이름에는 항상 "module." 이 들어가므로 어떤 모듈 이름으로도 env manifest 와 겹치지 않는다
ENV_MANIFEST_NAME = ".gae-deploy.env_variables.yaml"
DESCRIPTOR_NAME = ".gae-deploy.module.{module}.yaml"

HEADER = "# Generated by gae-deploy. Do not edit; this file is removed after deploy."


@dataclass(frozen=True)
class ManifestPaths:
    environment: str
    descriptor: str


def environment_manifest(target: TargetConfig) -> Dict[str, Any]:
    if target.environment_from is not None:
        raise DeployEnvironmentError(
            f"타겟 {target.name}: environment_from(원격 환경변수 소스)는 지원하지 않습니다."
        )
    if target.environment is None:
        raise DeployEnvironmentError(f"타겟 {target.name} 에 environment 가 정의되어 있지 않습니다.")
    return dict(target.environment)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def format_value(key: str, value: Any) -> str:
    """
    환경변수 하나의 값을 App Engine 에 넘길 문자열로 만든다.

    "{" 로 시작하는 문자열과 객체/배열 값은 구조화된 값으로 보고 compact JSON 으로
    다시 직렬화한다. 숫자/불리언/null 도 JSON 표기 문자열로 바꾼다.
    YAML 인용 처리는 render_environment 에서 yaml.safe_dump 가 맡는다.
    """
    if isinstance(value, str):
        if not value.strip().startswith("{"):
            return value
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError as e:
            raise DeployEnvironmentError(
                f"환경변수 {key} 의 값이 '{{' 로 시작하지만 JSON 으로 해석할 수 없습니다: {e}"
            ) from e
        return _compact_json(parsed)

    return _compact_json(value)


def render_environment(manifest: Mapping[str, Any], now: Optional[datetime] = None) -> str:
    generated_at = (now or datetime.now(timezone.utc)).isoformat(timespec="seconds")

    env_variables = {str(key): format_value(str(key), value) for key, value in manifest.items()}
    body = yaml.safe_dump(
        {"env_variables": env_variables},
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )
    return f"{HEADER}\n# Generated at {generated_at}\n{body}"


def render_descriptor(raw_descriptor: str, env_manifest_path: str) -> str:
    """includes 목록의 자리표시자 항목만 생성된 manifest 경로로 바꾼다."""
    return ENV_INCLUDE_RE.sub(
        lambda m: f"{m['lead']}{m['quote']}{env_manifest_path}{m['quote']}{m['tail']}",
        raw_descriptor,
    )


def manifest_paths(base_dir: str, module: str) -> ManifestPaths:
    return ManifestPaths(
        environment=os.path.join(base_dir, ENV_MANIFEST_NAME),
        descriptor=os.path.join(base_dir, DESCRIPTOR_NAME.format(module=module)),
    )


def write_manifests(
    base_dir: str,
    module: str,
    manifest: Mapping[str, Any],
    descriptor_text: str,
) -> ManifestPaths:
    paths = manifest_paths(base_dir, module)
    env_text = render_environment(manifest)
    # include 경로는 descriptor 기준 상대 경로 (같은 디렉토리)
    descriptor = render_descriptor(descriptor_text, ENV_MANIFEST_NAME)

    with open(paths.environment, "w", encoding="utf-8") as f:
        f.write(env_text)
    with open(paths.descriptor, "w", encoding="utf-8") as f:
        f.write(descriptor)

    logger.debug("manifest 생성: %s, %s", paths.environment, paths.descriptor)
    return paths


def remove_manifests(paths: ManifestPaths) -> None:
    for path in (paths.environment, paths.descriptor):
        if os.path.exists(path):
            os.remove(path)
            logger.debug("임시 파일 삭제: %s", path)


@contextmanager
def written_manifests(
    base_dir: str,
    module: str,
    manifest: Mapping[str, Any],
    descriptor_text: str,
) -> Iterator[ManifestPaths]:
    """manifest 를 쓰고, 블록을 벗어날 때 항상 삭제한다."""
    paths = manifest_paths(base_dir, module)
    try:
        yield write_manifests(base_dir, module, manifest, descriptor_text)
    finally:
        remove_manifests(paths)
