"""
gcp_secrets
-----------

webhook secret 을 Secret Manager 에서 읽어오는 모듈.
GITHUB_WEBHOOK_SECRET 대신 GITHUB_WEBHOOK_SECRET_NAME 을 설정한 경우에만 사용된다.
"""

from __future__ import annotations

from google.api_core.exceptions import NotFound
from google.cloud import secretmanager

from .logging_utils import get_logger


logger = get_logger(__name__)


def secret_version_name(project_id: str, secret_id: str, version: str = "latest") -> str:
    # 이미 전체 리소스 이름이면 그대로 사용
    if secret_id.startswith("projects/"):
        if "/versions/" in secret_id:
            return secret_id
        return f"{secret_id}/versions/{version}"
    return f"projects/{project_id}/secrets/{secret_id}/versions/{version}"


def access_secret(project_id: str, secret_id: str, version: str = "latest") -> str:
    """
    Secret Manager 에서 secret 값을 읽어 문자열로 반환한다.
    """
    name = secret_version_name(project_id, secret_id, version)
    logger.info("Secret Manager 에서 webhook secret 을 읽습니다: %s", name)

    client = secretmanager.SecretManagerServiceClient()
    try:
        response = client.access_secret_version(name=name)
    except NotFound as e:
        raise ValueError(f"Secret 이 존재하지 않습니다: {name}") from e

    return response.payload.data.decode("utf-8")
