from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
from typing import Any, Dict, List, Optional

from . import archive, gcp_functions, gcp_gcs, git_fetch, webhook
from .config import DeploymentConfig
from .errors import ArchiveError
from .gcp_auth import AppContext
from .logging_utils import get_logger


logger = get_logger(__name__)


def _source_dir(repo_dir: str, deployment: DeploymentConfig) -> str:
    # path 가 저장소 밖을 가리키지 않도록 확인
    root = os.path.realpath(repo_dir)
    source = os.path.realpath(os.path.join(root, deployment.path))
    if source != root and not source.startswith(root + os.sep):
        raise ArchiveError(f"배포 경로가 저장소 밖을 가리킵니다: {deployment.path}")
    return source


def plan_deployments(ctx: AppContext) -> str:
    """
    설정된 배포 목록과 대상 함수 리소스 이름을 요약한다. 실제 GCP 호출은 하지 않는다.
    """
    cfg = ctx.cfg
    lines: List[str] = []
    lines.append("# Deploy plan")
    lines.append(f"- project: {cfg.gcp_project_id}")
    lines.append(f"- stage_bucket: {cfg.stage_bucket}")
    lines.append(f"- scratch_dir: {cfg.scratch_dir}")
    lines.append("")

    lines.append("## Deployments")
    if not cfg.deployments:
        lines.append("- (none)")
    for d in cfg.deployments:
        location = gcp_functions.function_location(cfg.gcp_project_id, d.location)
        lines.append(f"- {d.repository}:{d.path} -> {location}/functions/{d.function_name}")

    return "\n".join(lines)


async def run_pipeline(ctx: AppContext, body: bytes, signature: Optional[str]) -> List[Dict[str, Any]]:
    """
    webhook 요청 하나를 처리한다.

    validate -> match -> clone(1회) -> 배포별 zip -> upload -> deploy 순서로 진행하며,
    같은 단계는 배포 대상들에 대해 동시에 실행된다.
    어느 하나라도 실패하면 예외가 그대로 전파되고 부분 결과는 반환하지 않는다.

    Returns:
        배포된 함수 정보 목록. 각 항목에는 원래 배포 설정이 "deployment" 로 붙는다.
    """
    cfg = ctx.cfg

    webhook.validate_request(body, signature, cfg.secret_token)
    event = webhook.parse_push_event(body, signature)
    deployments = webhook.match_deployments(event.repository, cfg.deployments)

    os.makedirs(cfg.scratch_dir, exist_ok=True)
    repo_dir = tempfile.mkdtemp(prefix=f"{event.repo_name}-", dir=cfg.scratch_dir)
    try:
        directory = await git_fetch.download_repo(
            event.repository,
            repo_dir,
            base_url=cfg.git_base_url,
            timeout=cfg.fetch_timeout,
        )

        sources = [_source_dir(directory, d) for d in deployments]
        archives = await asyncio.gather(
            *(archive.zip_dir(s, cfg.scratch_dir) for s in sources)
        )

        bucket = ctx.stage_bucket
        uploaded = await asyncio.gather(
            *(gcp_gcs.upload_archive(bucket, a) for a in archives)
        )

        results = await asyncio.gather(
            *(gcp_functions.deploy_function(ctx, d, a) for d, a in zip(deployments, uploaded))
        )
    finally:
        shutil.rmtree(repo_dir, ignore_errors=True)

    for result, deployment in zip(results, deployments):
        result["deployment"] = deployment.to_dict()

    logger.info("배포 완료: %s", [d.function_name for d in deployments])
    return list(results)
