from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.local"]

DEFAULT_CONFIG_NAME = "gae-deploy.json"
DEFAULT_GCLOUD_PATH = "gcloud"


def load_env_files(base_dir: str = ".",
                   files: Optional[List[str]] = None) -> None:
    """
    주어진 디렉토리에서 .env 계열 파일을 순서대로 로드한다.
    후순위 파일이 같은 키를 덮어쓴다.
    """
    order = files or ENV_FILES_DEFAULT_ORDER
    for name in order:
        path = os.path.join(base_dir, name)
        if os.path.exists(path):
            load_dotenv(path, override=True)


@dataclass(frozen=True)
class Settings:
    """도구 자체의 실행 설정 (배포 타겟 설정과는 별개)."""

    config_path: str = DEFAULT_CONFIG_NAME
    gcloud_path: str = DEFAULT_GCLOUD_PATH

    @classmethod
    def from_env(cls, base_dir: str = ".") -> "Settings":
        config_path = os.getenv("GAE_DEPLOY_CONFIG") or DEFAULT_CONFIG_NAME
        if not os.path.isabs(config_path):
            config_path = os.path.join(base_dir, config_path)
        return cls(
            config_path=config_path,
            gcloud_path=os.getenv("GAE_DEPLOY_GCLOUD") or DEFAULT_GCLOUD_PATH,
        )
