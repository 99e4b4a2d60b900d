"""
versioning
----------

배포할 버전 문자열을 결정한다.

- "<prefix>++" 템플릿: 이미 배포된 버전들 중 <prefix><숫자>(-<label>)? 형태의 최대 번호 + 1
- 그 외: 템플릿 문자열을 그대로 사용 (이미 있으면 경고 후 덮어씀)

이 모듈은 I/O 를 하지 않는다. 배포된 버전 목록은 gcloud.GcloudTool.list_versions 로 받아서 넘긴다.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from .errors import UsageError
from .logging_utils import get_logger


logger = get_logger(__name__)


LABEL_PATTERN = r"^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$"
INCREMENT_MARKER = "++"

_LABEL_RE = re.compile(LABEL_PATTERN)


def service_id_for(module: str) -> str:
    """App Engine 에서 "app" 모듈은 default 서비스로 배포된다."""
    return "default" if module == "app" else module


def validate_label(label: str) -> None:
    if not _LABEL_RE.match(label):
        raise UsageError(
            f"label 형식이 올바르지 않습니다: {label!r} (허용 패턴: {LABEL_PATTERN})"
        )


def parse_template(template: str) -> Optional[str]:
    """증가 모드 템플릿이면 prefix 를, 아니면 None 을 반환한다."""
    if template.endswith(INCREMENT_MARKER):
        return template[: -len(INCREMENT_MARKER)]
    return None


def next_incremental_version(prefix: str, snapshot: Iterable[str]) -> str:
    pattern = re.compile(re.escape(prefix) + r"(\d+)(?:-[a-z0-9-]+)?$")

    highest = 0
    for version_id in snapshot:
        m = pattern.search(version_id)
        if not m:
            continue
        highest = max(highest, int(m.group(1)))

    return f"{prefix}{highest + 1}"


def resolve_version(
    template: str,
    snapshot: Iterable[str],
    label: Optional[str] = None,
    logger: logging.Logger = logger,
) -> str:
    if label is not None:
        validate_label(label)

    snapshot = list(snapshot)
    prefix = parse_template(template)
    if prefix is not None:
        version = next_incremental_version(prefix, snapshot)
        logger.debug("증가 모드 버전 결정: template=%s -> %s (기존 %d개)", template, version, len(snapshot))
    else:
        version = template
        if version in snapshot:
            logger.warning("버전 %s 이(가) 이미 배포되어 있습니다. 기존 버전을 덮어씁니다.", version)

    if label:
        version = f"{version}-{label}"
    return version
