"""
webhook
-------

GitHub push webhook 요청 검증(HMAC 서명)과
저장소 이름으로 배포 설정을 고르는 로직.

See https://developer.github.com/webhooks/securing.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .config import DeploymentConfig
from .errors import AuthenticationError, BadRequestError, NotFoundError
from .logging_utils import get_logger


logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Hub-Signature"
SIGNATURE_PREFIX = "sha1="


@dataclass(frozen=True)
class WebhookEvent:
    repository: str
    repo_name: str
    body: bytes
    signature: Optional[str]


def compute_signature(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha1).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def validate_request(body: bytes, signature: Optional[str], secret: str) -> None:
    """
    요청 본문(raw bytes)에 대한 HMAC-SHA1 서명을 검증한다.

    본문은 반드시 수신한 그대로의 바이트여야 한다. JSON 을 다시 직렬화하면
    키 순서/공백이 달라져 정상 요청도 실패한다.
    """
    expected = compute_signature(body, secret)
    # 헤더는 latin-1 로 디코딩되므로 비 ASCII 문자가 올 수 있다. bytes 로 비교한다.
    if not signature or not hmac.compare_digest(
        signature.encode("utf-8", "surrogateescape"), expected.encode("ascii")
    ):
        logger.warning("webhook 서명이 일치하지 않습니다.")
        raise AuthenticationError("Unauthorized")
    logger.info("Request validated.")


def parse_push_event(body: bytes, signature: Optional[str]) -> WebhookEvent:
    """
    push payload 에서 owner/name 형식의 저장소 이름을 꺼낸다.
    """
    try:
        payload = json.loads(body)
        repo = payload["repository"]
        owner = repo["owner"]
        # push 이벤트는 owner.name, 그 외 이벤트는 owner.login 만 있다.
        user = owner.get("name") or owner["login"]
        name = repo["name"]
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise BadRequestError(f"payload 에 repository 정보가 없습니다: {e}") from e

    return WebhookEvent(
        repository=f"{user}/{name}",
        repo_name=name,
        body=body,
        signature=signature,
    )


def match_deployments(repository: str,
                      deployments: Sequence[DeploymentConfig]) -> List[DeploymentConfig]:
    matched = [d for d in deployments if d.repository == repository]
    if not matched:
        raise NotFoundError(f"No matching deployments for {repository}.")
    logger.info("배포 대상 %d 건: %s", len(matched), [d.function_name for d in matched])
    return matched
