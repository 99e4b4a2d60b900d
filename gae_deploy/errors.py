"""
errors
------

배포 파이프라인에서 사용하는 예외 계층.
CLI 는 메시지 문자열이 아니라 예외 타입(exit_code)으로 분기한다.
"""

from __future__ import annotations


class DeployError(Exception):
    """gae-deploy 공통 예외."""

    exit_code: int = 1


class UsageError(DeployError):
    """잘못된 호출 (명령 개수, 필수 파라미터 누락, 잘못된 label 등)."""

    exit_code = 2


class ConfigError(DeployError):
    """설정 파일/타겟/모듈 descriptor 관련 오류."""

    exit_code = 3


class DeployEnvironmentError(DeployError):
    """타겟에 environment 가 없거나, 지원하지 않는 environment_from 을 요청한 경우."""

    exit_code = 4


class ExternalToolError(DeployError):
    """gcloud 를 찾을 수 없거나 정상 동작하지 않는 경우."""

    exit_code = 5


class ExecutionCancelled(Exception):
    """사용자가 배포 확인을 거절함. 오류가 아니라 정상적인 조기 종료."""

    exit_code = 0
