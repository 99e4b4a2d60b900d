"""
gae_deploy
----------

App Engine 배포 CLI 패키지.
타겟별 JSON 설정을 읽어 버전 번호를 자동으로 결정하고, 환경변수 manifest 를 만든 뒤
`gcloud app deploy` 를 호출하는 것을 목표로 한다.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "runner",
    "versioning",
]
