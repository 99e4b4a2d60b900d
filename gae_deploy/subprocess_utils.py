from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from textwrap import shorten
from typing import Mapping, Sequence

from .errors import ExternalToolError
from .logging_utils import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: str
    stderr: str


def _failure(cmd: Sequence[str], returncode: int, stdout: str, stderr: str) -> ExternalToolError:
    stdout = (stdout or "").strip()
    stderr = (stderr or "").strip()
    detail = ""
    if stderr:
        detail = "\nstderr:\n" + shorten(stderr, width=2000)
    elif stdout:
        detail = "\nstdout:\n" + shorten(stdout, width=2000)
    return ExternalToolError(f"명령 실행 실패: {' '.join(cmd)} (exit={returncode}){detail}")


def run_command(
    cmd: Sequence[str],
    *,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
    stream_output: bool = False,
) -> RunResult:
    """
    subprocess 실행 공통 유틸.

    - stream_output=False: stdout/stderr 캡처, 실패 시 요약을 예외 메시지에 포함
    - stream_output=True : stdout/stderr 를 합쳐 실시간으로 터미널에 흘린다 (gcloud app deploy 용)

    timeout 기본값은 None (배포가 끝날 때까지 기다린다).
    """
    logger.info("명령 실행: %s", " ".join(cmd))

    if stream_output:
        # gcloud 는 진행 로그를 stderr 로 내보내므로 STDOUT 으로 합친다.
        try:
            proc = subprocess.Popen(  # noqa: S603
                list(cmd),
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise ExternalToolError(
                f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud 가 설치되어 있는지 확인하세요)"
            ) from e

        out_lines: list[str] = []
        try:
            assert proc.stdout is not None
            for line in proc.stdout:
                out_lines.append(line)
                sys.stdout.write(line)
                sys.stdout.flush()
            returncode = proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired as e:
            proc.kill()
            raise ExternalToolError(
                f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
            ) from e
        finally:
            if proc.stdout is not None:
                proc.stdout.close()

        output = "".join(out_lines)
        if returncode != 0:
            raise _failure(cmd, returncode, output, "")
        return RunResult(returncode=returncode, stdout=output, stderr="")

    # capture 모드 (조용히 돌리고 실패 시 요약)
    try:
        result = subprocess.run(  # noqa: S603
            list(cmd),
            check=True,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(
            f"필요한 명령을 찾을 수 없습니다: {cmd[0]} (gcloud 가 설치되어 있는지 확인하세요)"
        ) from e
    except subprocess.TimeoutExpired as e:
        raise ExternalToolError(
            f"명령 실행이 {timeout}초 안에 끝나지 않았습니다: {' '.join(cmd)}"
        ) from e
    except subprocess.CalledProcessError as e:
        raise _failure(cmd, e.returncode, e.stdout, e.stderr) from e

    if result.stdout:
        logger.debug("명령 stdout: %s", shorten(result.stdout.strip(), width=2000))
    if result.stderr:
        logger.debug("명령 stderr: %s", shorten(result.stderr.strip(), width=2000))
    return RunResult(returncode=result.returncode, stdout=result.stdout or "", stderr=result.stderr or "")
