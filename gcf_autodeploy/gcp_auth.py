"""
gcp_auth
--------

ADC(Application Default Credentials)로 GCP 클라이언트를 만들고,
프로세스 전체에서 한 번만 생성해 재사용하도록 AppContext 에 담는다.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

import google.auth
from google.cloud import functions_v1, storage

from .config import RelayConfig
from .logging_utils import get_logger


logger = get_logger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class AppContext:
    """
    설정과 GCP 클라이언트 핸들.

    클라이언트는 처음 사용할 때 한 번만 만들어지고 이후에는 읽기 전용으로 공유된다.
    테스트에서는 storage_client / functions_client 를 직접 넘길 수 있다.
    """

    def __init__(self, cfg: RelayConfig, *,
                 storage_client: Optional[storage.Client] = None,
                 functions_client: Optional[Any] = None) -> None:
        self.cfg = cfg
        self._lock = threading.Lock()
        self._credentials = None
        self._storage_client = storage_client
        self._functions_client = functions_client

    def _get_credentials(self):  # noqa: ANN202
        if self._credentials is None:
            credentials, project = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
            logger.info("ADC 인증 정보를 로드했습니다. (project=%s)", project)
            self._credentials = credentials
        return self._credentials

    @property
    def storage_client(self) -> storage.Client:
        with self._lock:
            if self._storage_client is None:
                self._storage_client = storage.Client(
                    project=self.cfg.gcp_project_id,
                    credentials=self._get_credentials(),
                )
            return self._storage_client

    @property
    def functions_client(self) -> functions_v1.CloudFunctionsServiceClient:
        with self._lock:
            if self._functions_client is None:
                self._functions_client = functions_v1.CloudFunctionsServiceClient(
                    credentials=self._get_credentials(),
                )
            return self._functions_client

    @property
    def stage_bucket(self) -> storage.Bucket:
        return self.storage_client.bucket(self.cfg.stage_bucket)


def build_context(cfg: RelayConfig) -> AppContext:
    """
    서버 시작 시 한 번 호출한다. 클라이언트도 여기서 미리 만들어 둔다.
    """
    ctx = AppContext(cfg)
    ctx.storage_client
    ctx.functions_client
    logger.info("GCP 클라이언트 초기화 완료: project=%s", cfg.gcp_project_id)
    return ctx
