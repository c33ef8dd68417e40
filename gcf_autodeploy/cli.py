import sys

import click
import uvicorn

from .config import load_env_files, RelayConfig
from .gcp_auth import AppContext, build_context
from .gcp_gcs import check_stage_bucket
from .logging_utils import setup_logging, get_logger
from .orchestrator import plan_deployments
from .server import create_app


logger = get_logger(__name__)


@click.group()
@click.option(
    "-C",
    "--chdir",
    "chdir",
    type=click.Path(file_okay=False, dir_okay=True, exists=True),
    default=".",
    help="작업 디렉토리 (기본: 현재 디렉토리)",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="로그 레벨을 DEBUG로 올립니다. (-vv 는 라이브러리 로그까지 출력)",
)
@click.pass_context
def main(ctx: click.Context, chdir: str, verbose: int) -> None:
    """GitHub push webhook -> Cloud Functions 자동 배포 릴레이"""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["chdir"] = chdir
    ctx.obj["verbose"] = verbose


def _load_config_from_ctx(ctx: click.Context) -> RelayConfig:
    base_dir: str = ctx.obj["chdir"]
    load_env_files(base_dir)
    cfg = RelayConfig.from_env(base_dir)
    logger.debug("Config loaded: project=%s bucket=%s deployments=%d",
                 cfg.gcp_project_id, cfg.stage_bucket, len(cfg.deployments))
    return cfg


def _load_or_exit(ctx: click.Context) -> RelayConfig:
    try:
        return _load_config_from_ctx(ctx)
    except Exception as e:  # noqa: BLE001
        click.echo(f"[ERROR] 설정 로드 실패: {e}", err=True)
        sys.exit(1)


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True, help="바인딩 주소")
@click.option("--port", default=8080, type=int, envvar="PORT", show_default=True, help="포트 (PORT 환경변수)")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """webhook 서버를 실행한다."""
    cfg = _load_or_exit(ctx)
    app = create_app(context_factory=lambda: build_context(cfg))
    logger.info("webhook 서버 시작: %s:%d (배포 설정 %d건)", host, port, len(cfg.deployments))
    uvicorn.run(app, host=host, port=port, log_config=None)


@main.command()
@click.pass_context
def plan(ctx: click.Context) -> None:
    """설정된 배포 목록과 대상 함수 이름을 출력"""
    cfg = _load_or_exit(ctx)
    click.echo(plan_deployments(AppContext(cfg)))


@main.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """
    stage 버킷이 존재하는지 점검한다.
    (실제 리소스 생성/변경은 하지 않는다)
    """
    cfg = _load_or_exit(ctx)

    try:
        status = check_stage_bucket(cfg, AppContext(cfg).storage_client)
    except Exception as e:  # noqa: BLE001
        logger.exception("사전 체크 중 오류 발생")
        click.echo(f"[ERROR] 체크 실패: {e}", err=True)
        sys.exit(1)

    click.echo(status)

    # 버킷이 없으면 exit 1 로 종료하여 CI 등에서 감지 가능하게 한다.
    if "버킷 없음" in status:
        sys.exit(1)
