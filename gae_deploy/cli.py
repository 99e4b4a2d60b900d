import sys
from typing import List, NoReturn, Sequence

import click

from .args import ParsedOptions, resolve_command
from .errors import DeployError, ExecutionCancelled, UsageError
from .gcloud import GcloudTool
from .logging_utils import setup_logging, get_logger
from .runner import DeployOutcome, run_deploy, run_init, run_targets
from .settings import Settings, load_env_files


logger = get_logger(__name__)

PROG_NAME = "gae-deploy"
BANNER_WIDTH = 60


def _options_from_params(params: dict) -> ParsedOptions:
    # -C 는 작업 디렉토리 지정용이라 명령 해석 대상이 아니다
    return ParsedOptions.from_params({k: v for k, v in params.items() if k != "chdir"})


def _print_banner(title: str, message: str) -> None:
    click.secho("=" * BANNER_WIDTH, fg="red", err=True)
    click.secho(f" 실패: {title}", fg="red", bold=True, err=True)
    click.secho("=" * BANNER_WIDTH, fg="red", err=True)
    click.echo(message, err=True)


def _fail(exc: Exception, exit_code: int) -> NoReturn:
    _print_banner(type(exc).__name__, str(exc))
    sys.exit(exit_code)


class _CliUsageError(click.UsageError):
    """click 자체의 옵션 파싱 오류도 다른 실패와 같은 배너로 보여준다."""

    exit_code = UsageError.exit_code

    def show(self, file=None) -> None:
        if self.ctx is not None:
            click.echo(self.ctx.get_usage(), err=True)
        _print_banner(UsageError.__name__, self.format_message())


class _DeployCommand(click.Command):
    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        try:
            return super().parse_args(ctx, args)
        except _CliUsageError:
            raise
        except click.UsageError as e:
            raise _CliUsageError(e.format_message(), ctx=ctx) from e


def _confirm(message: str) -> bool:
    return click.confirm(message, default=False)


@click.command(name=PROG_NAME, cls=_DeployCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--init", "init", is_flag=True, help="현재 디렉토리에 설정 스캐폴드를 만듭니다.")
@click.option("--targets", "targets", is_flag=True, help="설정된 배포 타겟 목록을 출력합니다.")
@click.option("--test", "test", is_flag=True, help="배포 명령을 만들어 출력만 합니다. (실제 배포 없음)")
@click.option("--run", "run", is_flag=True, help="실제로 배포합니다.")
@click.option("--module", "module", type=str, default=None, help="배포할 모듈 이름 (<module>.yaml). default 는 app 과 같습니다.")
@click.option("--target", "target", type=str, default=None, help="설정 파일의 타겟 이름")
@click.option("--label", "label", type=str, default=None, help="버전 뒤에 붙일 label (소문자/숫자/하이픈)")
@click.option("-f", "--force", "force", is_flag=True, help="확인 없이 배포합니다. (gcloud --quiet)")
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다.",
)
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int, **_: object) -> None:
    """App Engine 모듈을 설정된 타겟으로 배포하는 CLI"""
    setup_logging(verbose)
    load_env_files(chdir)
    settings = Settings.from_env(chdir)
    options = _options_from_params(ctx.params)
    logger.debug("Options: %s, settings: %s", options, settings)

    try:
        command = resolve_command(options)

        if command == "init":
            for path in run_init(base_dir=chdir, config_path=settings.config_path):
                click.echo(f"{path} 을(를) 생성했습니다.")
            return

        if command == "targets":
            click.echo(run_targets(options, config_path=settings.config_path))
            return

        result = run_deploy(
            options,
            base_dir=chdir,
            config_path=settings.config_path,
            tool=GcloudTool(settings.gcloud_path),
            confirm=_confirm,
        )
    except ExecutionCancelled as e:
        click.echo(str(e))
        return
    except UsageError as e:
        click.echo(ctx.get_usage(), err=True)
        _fail(e, e.exit_code)
    except DeployError as e:
        logger.debug("파이프라인 실패", exc_info=True)
        _fail(e, e.exit_code)
    except click.Abort:
        raise
    except Exception as e:  # noqa: BLE001
        logger.exception("배포 중 예상하지 못한 오류 발생")
        _fail(e, 1)

    assert result.request is not None and result.deploy_command is not None
    if result.outcome is DeployOutcome.SKIPPED:
        click.echo(str(result.deploy_command))
        click.echo(f"[TEST] {result.request.service_id}:{result.request.version} (실제 배포는 하지 않았습니다)")
        return

    click.secho(
        f"배포 완료: {result.request.service_id}:{result.request.version} "
        f"(project={result.target_config.app_id}, 트래픽은 전환하지 않았습니다)",
        fg="green",
    )


def parse_args(tokens: Sequence[str]) -> ParsedOptions:
    """
    CLI 와 같은 옵션 정의로 토큰을 파싱만 한다. (명령은 실행하지 않음)
    """
    try:
        with main.make_context(PROG_NAME, list(tokens)) as ctx:
            params = dict(ctx.params)
    except click.UsageError as e:
        raise UsageError(e.format_message()) from e
    return _options_from_params(params)
