"""
gcp_functions
-------------

Cloud Functions 생성/업데이트 및 long-running operation polling 을 담당하는 모듈.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from google.api_core.exceptions import AlreadyExists, GoogleAPIError
from google.api_core.operation import Operation
from google.auth.exceptions import GoogleAuthError
from google.cloud import functions_v1

from .config import DeploymentConfig
from .errors import DeployError, DeployTimeoutError
from .gcp_auth import AppContext
from .gcp_gcs import storage_source_url
from .logging_utils import get_logger


logger = get_logger(__name__)


def function_location(project_id: str, location: str) -> str:
    return f"projects/{project_id}/locations/{location}"


def build_function_resource(location: str, function_name: str, source_archive_url: str, *,
                            entry_point: Optional[str] = None,
                            runtime: Optional[str] = None) -> functions_v1.CloudFunction:
    """
    HTTP 트리거 함수 리소스를 만든다. 이벤트 트리거는 지원하지 않는다.
    """
    resource = functions_v1.CloudFunction(
        name=f"{location}/functions/{function_name}",
        source_archive_url=source_archive_url,
        https_trigger=functions_v1.HttpsTrigger(
            security_level=functions_v1.HttpsTrigger.SecurityLevel.SECURE_ALWAYS,
        ),
    )
    if entry_point:
        resource.entry_point = entry_point
    if runtime:
        resource.runtime = runtime
    return resource


def create_or_update_function(client: functions_v1.CloudFunctionsServiceClient,
                              location: str,
                              resource: functions_v1.CloudFunction) -> Operation:
    """
    함수 생성을 시도하고, 이미 존재하면 같은 리소스로 업데이트한다.
    그 외 오류는 재시도하지 않는다.
    """
    try:
        operation = client.create_function(location=location, function=resource)
        logger.info("Successfully started create operation for %s", resource.name)
        return operation
    except AlreadyExists:
        logger.info("함수가 이미 존재하여 업데이트합니다: %s", resource.name)
    except (GoogleAPIError, GoogleAuthError) as e:
        logger.error("Failed to create function %s", resource.name)
        raise DeployError(f"Failed to create function {resource.name}: {e}") from e

    try:
        operation = client.update_function(function=resource)
    except (GoogleAPIError, GoogleAuthError) as e:
        logger.error("Failed to update function %s", resource.name)
        raise DeployError(f"Failed to update function {resource.name}: {e}") from e

    logger.info("Successfully started update operation for %s", resource.name)
    return operation


async def poll_operation(operation: Operation, *,
                         interval: float = 0.5,
                         max_attempts: int = 1200) -> Dict[str, Any]:
    """
    operation 이 done 이 될 때까지 interval 초 간격으로 조회한다.

    Returns:
        배포된 CloudFunction 을 dict 로 변환한 값

    Raises:
        DeployError: operation 이 오류로 끝나거나 상태 조회에 실패한 경우
        DeployTimeoutError: max_attempts 번 조회해도 끝나지 않은 경우
    """
    name = operation.operation.name
    for attempt in range(1, max_attempts + 1):
        try:
            done = await asyncio.to_thread(operation.done)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise DeployError(f"operation 상태 조회 실패: {name}: {e}") from e
        if done:
            break
        logger.debug("operation 진행 중 (%d/%d): %s", attempt, max_attempts, name)
        await asyncio.sleep(interval)
    else:
        raise DeployTimeoutError(
            f"operation 이 {max_attempts}회 조회 안에 끝나지 않았습니다: {name}"
        )

    try:
        function = operation.result()
    except (GoogleAPIError, GoogleAuthError) as e:
        logger.error("operation 실패: %s", name)
        raise DeployError(f"Deployment operation {name} failed: {e}") from e

    logger.info("Successfully deployed %s", function.name)
    return functions_v1.CloudFunction.to_dict(function, preserving_proto_field_name=False)


async def deploy_function(ctx: AppContext, deployment: DeploymentConfig, archive: str) -> Dict[str, Any]:
    """
    업로드된 archive 로 함수를 배포하고 완료될 때까지 기다린다.
    """
    cfg = ctx.cfg
    logger.info("Deploying function %s with %s", deployment.function_name, archive)

    location = function_location(cfg.gcp_project_id, deployment.location)
    resource = build_function_resource(
        location,
        deployment.function_name,
        storage_source_url(cfg.stage_bucket, archive),
        entry_point=deployment.entry_point,
        runtime=deployment.runtime,
    )

    operation = await asyncio.to_thread(
        create_or_update_function, ctx.functions_client, location, resource
    )
    return await poll_operation(
        operation,
        interval=cfg.poll_interval,
        max_attempts=cfg.poll_max_attempts,
    )
