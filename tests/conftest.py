"""
pytest 설정:

로컬 작업 환경에 설치된 다른 버전의 gcf_autodeploy 패키지가 존재할 때,
`pytest` 실행 시 site-packages 쪽이 먼저 import 되어 테스트가 깨질 수 있다.

테스트는 항상 현재 레포의 소스를 대상으로 해야 하므로, repo root 를 sys.path 최상단에 고정한다.
"""

from __future__ import annotations

import os
import sys


def pytest_configure() -> None:
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


import pytest


RELAY_ENV_KEYS = (
    "GCP_PROJECT_ID",
    "GCLOUD_PROJECT",
    "GOOGLE_CLOUD_PROJECT",
    "STAGE_BUCKET",
    "GITHUB_WEBHOOK_SECRET",
    "GITHUB_WEBHOOK_SECRET_NAME",
    "DEPLOYMENTS_FILE",
    "FUNCTION_LOCATION",
    "SCRATCH_DIR",
    "POLL_INTERVAL_SECONDS",
    "POLL_MAX_ATTEMPTS",
    "GIT_BASE_URL",
    "GIT_FETCH_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolate_relay_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """
    load_env_files() 는 os.environ 을 직접 덮어쓴다.
    테스트마다 릴레이 관련 환경변수를 비우고, 끝나면 원래 값으로 되돌린다.
    """
    for key in RELAY_ENV_KEYS:
        # setenv 로 원래 값을 기록해 두어야 teardown 에서 복원된다.
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
