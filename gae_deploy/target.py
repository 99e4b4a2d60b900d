"""
target
------

요청된 module + target 쌍을 설정 항목과 모듈 descriptor(<module>.yaml)에 연결한다.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Optional

from .args import ParsedOptions
from .config import ENV_INCLUDE_PLACEHOLDER, ENV_INCLUDE_RE, DeployConfig
from .errors import ConfigError, UsageError
from .logging_utils import get_logger
from .versioning import service_id_for


logger = get_logger(__name__)


DEFAULT_MODULE_ALIAS = "default"
DEFAULT_MODULE = "app"


@dataclass(frozen=True)
class DeploymentRequest:
    module: str
    target: str
    label: Optional[str] = None
    version: Optional[str] = None

    @property
    def service_id(self) -> str:
        return service_id_for(self.module)

    @property
    def descriptor_name(self) -> str:
        return f"{self.module}.yaml"

    def with_version(self, version: str) -> "DeploymentRequest":
        return replace(self, version=version)


def resolve_request(options: ParsedOptions) -> DeploymentRequest:
    module = options.value("module")
    target = options.value("target")
    if not module or not target:
        raise UsageError("--module 과 --target 이 모두 필요합니다.")

    if module == DEFAULT_MODULE_ALIAS:
        module = DEFAULT_MODULE

    return DeploymentRequest(module=module, target=target, label=options.value("label"))


def validate_request(request: DeploymentRequest, config: DeployConfig, base_dir: str) -> str:
    """
    모듈 descriptor 와 타겟을 확인하고 descriptor 원문을 반환한다.

    descriptor 에는 환경변수 include 자리표시자가 반드시 있어야 한다.
    배포 시 이 자리를 생성된 manifest 경로로 치환하기 때문이다.
    """
    descriptor_path = os.path.join(base_dir, request.descriptor_name)
    if not os.path.isfile(descriptor_path):
        raise ConfigError(f"모듈 descriptor 를 찾을 수 없습니다: {descriptor_path}")

    if request.target not in config.targets:
        known = ", ".join(config.targets) or "(none)"
        raise ConfigError(f"알 수 없는 타겟입니다: {request.target} (설정된 타겟: {known})")

    with open(descriptor_path, "r", encoding="utf-8") as f:
        descriptor = f.read()

    if not ENV_INCLUDE_RE.search(descriptor):
        raise ConfigError(
            f"{request.descriptor_name} 에 환경변수 include({ENV_INCLUDE_PLACEHOLDER}) 가 없습니다. "
            f"includes:\n  - {ENV_INCLUDE_PLACEHOLDER}\n 항목을 추가하세요."
        )

    logger.debug("descriptor 확인 완료: %s (target=%s)", descriptor_path, request.target)
    return descriptor
