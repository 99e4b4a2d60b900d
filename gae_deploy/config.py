from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from importlib import resources
from typing import Any, Dict, List, Mapping, Optional

from .args import ParsedOptions
from .errors import ConfigError
from .logging_utils import get_logger


logger = get_logger(__name__)


DEFAULT_VERSION_TEMPLATE = "deploy++"

# 모듈 descriptor 의 includes 에 들어가는 환경변수 파일 이름.
# 배포 시에는 생성된 manifest 경로로 치환된다.
ENV_INCLUDE_PLACEHOLDER = "env_variables.yaml"

# descriptor 의 includes 목록 항목 ("  - env_variables.yaml") 만 자리표시자로 본다.
# 다른 파일 이름의 일부나 주석 속 언급은 해당하지 않는다.
ENV_INCLUDE_RE = re.compile(
    r"^(?P<lead>[ \t]*-[ \t]*)(?P<quote>[\"']?)"
    + re.escape(ENV_INCLUDE_PLACEHOLDER)
    + r"(?P=quote)(?P<tail>[ \t]*(?:#.*)?\r?)$",
    re.MULTILINE,
)

SCAFFOLD_TEMPLATE = "gae-deploy.example.json"


@dataclass(frozen=True)
class TargetConfig:
    name: str
    app_id: Optional[str] = None
    version: str = DEFAULT_VERSION_TEMPLATE
    require_label: bool = False
    environment: Optional[Mapping[str, Any]] = None
    environment_from: Optional[Any] = None

    @classmethod
    def from_dict(cls, name: str, raw: Any) -> "TargetConfig":
        if not isinstance(raw, dict):
            raise ConfigError(f"타겟 설정은 JSON 객체여야 합니다: {name}")

        app_id = raw.get("app_id")
        if app_id is not None and not isinstance(app_id, str):
            raise ConfigError(f"타겟 {name} 의 app_id 는 문자열이어야 합니다.")

        version = raw.get("version", DEFAULT_VERSION_TEMPLATE)
        if not isinstance(version, str) or not version:
            raise ConfigError(f"타겟 {name} 의 version 은 비어있지 않은 문자열이어야 합니다.")

        require_label = raw.get("require_label", False)
        if not isinstance(require_label, bool):
            raise ConfigError(f"타겟 {name} 의 require_label 은 true/false 여야 합니다.")

        environment = raw.get("environment")
        environment_from = raw.get("environment_from")
        if environment is not None and environment_from is not None:
            raise ConfigError(
                f"타겟 {name} 에는 environment 와 environment_from 중 하나만 지정할 수 있습니다."
            )
        if environment is not None and not isinstance(environment, dict):
            raise ConfigError(f"타겟 {name} 의 environment 는 JSON 객체여야 합니다.")

        return cls(
            name=name,
            app_id=app_id,
            version=version,
            require_label=require_label,
            environment=environment,
            environment_from=environment_from,
        )


@dataclass(frozen=True)
class DeployConfig:
    targets: Mapping[str, TargetConfig] = field(default_factory=dict)
    source: str = ""
    has_targets_key: bool = True

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], source: str = "") -> "DeployConfig":
        if "targets" not in raw:
            return cls(targets={}, source=source, has_targets_key=False)

        raw_targets = raw["targets"]
        if not isinstance(raw_targets, dict):
            raise ConfigError(f"targets 는 JSON 객체여야 합니다: {source}")

        targets: Dict[str, TargetConfig] = {}
        for name, value in raw_targets.items():
            targets[name] = TargetConfig.from_dict(name, value)
        return cls(targets=targets, source=source)


def _read_json_object(path: str) -> Dict[str, Any]:
    if not os.path.isfile(path):
        raise ConfigError(f"설정 파일을 찾을 수 없습니다: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"설정 파일을 JSON 으로 해석할 수 없습니다: {path} ({e})") from e

    if not isinstance(data, dict):
        raise ConfigError(f"설정 파일의 최상위 값은 JSON 객체여야 합니다: {path}")
    return data


def load_config(path: str) -> DeployConfig:
    """
    JSON 설정 파일을 읽는다.

    최상위에 "file" 키가 있으면 그 경로의 파일을 대신 읽는다. (한 단계만)
    리다이렉트된 파일 안의 "file" 키는 다시 따라가지 않고 무시한다.
    상대 경로는 리다이렉트를 선언한 파일의 디렉토리 기준으로 해석한다.
    """
    data = _read_json_object(path)
    source = path

    redirect = data.get("file")
    if redirect is not None:
        if not isinstance(redirect, str) or not redirect:
            raise ConfigError(f"file 리다이렉트 값은 경로 문자열이어야 합니다: {path}")
        target = os.path.expanduser(redirect)
        if not os.path.isabs(target):
            target = os.path.join(os.path.dirname(os.path.abspath(path)), target)
        logger.debug("설정 파일 리다이렉트: %s -> %s", path, target)

        data = _read_json_object(target)
        source = target
        if "file" in data:
            logger.debug("리다이렉트된 설정의 file 키는 무시합니다: %s", target)

    return DeployConfig.from_dict(data, source=source)


def validate_config(config: DeployConfig, options: ParsedOptions) -> None:
    """
    설정의 구조적 유효성을 확인한다.

    - targets 가 없거나 비어있으면 실패
    - app_id 가 없는 타겟이 있으면 실패
    - 선택된 타겟이 require_label 인데 --label 이 없으면 실패
    """
    if not config.has_targets_key:
        raise ConfigError(f"설정에 targets 가 없습니다: {config.source}")
    if not config.targets:
        raise ConfigError(f"설정에 정의된 타겟이 없습니다: {config.source}")

    selected = options.value("target")
    for name, target in config.targets.items():
        if not target.app_id:
            raise ConfigError(f"타겟 {name} 에 app_id 가 없습니다.")
        if target.require_label and name == selected and not options.value("label"):
            raise ConfigError(
                f"타겟 {name} 은(는) label 이 필요합니다. --label=<slug> 를 지정하세요."
            )


def init_project(base_dir: str, config_path: str) -> List[str]:
    """
    현재 디렉토리에 설정 스캐폴드와 빈 환경변수 include 파일을 만든다.
    설정 파일이 이미 있으면 아무것도 쓰지 않고 실패한다.
    """
    if os.path.exists(config_path):
        raise ConfigError(f"설정 파일이 이미 존재합니다: {config_path}")

    created: List[str] = []

    env_path = os.path.join(base_dir, ENV_INCLUDE_PLACEHOLDER)
    if os.path.exists(env_path):
        logger.info("%s 이(가) 이미 존재하여 건너뜀", ENV_INCLUDE_PLACEHOLDER)
    else:
        with open(env_path, "w", encoding="utf-8") as f:
            f.write("")
        created.append(env_path)

    scaffold = resources.files("gae_deploy.examples").joinpath(SCAFFOLD_TEMPLATE)
    with scaffold.open("r", encoding="utf-8") as src, open(config_path, "w", encoding="utf-8") as dst:
        dst.write(src.read())
    created.append(config_path)

    logger.info("설정 스캐폴드를 생성했습니다: %s", config_path)
    return created
