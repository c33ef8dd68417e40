from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv


ENV_FILES_DEFAULT_ORDER = [".env", ".env.relay", ".env.secrets"]

DEFAULT_LOCATION = "us-central1"
DEFAULT_DEPLOYMENTS_FILE = "deployments.json"


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


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} 값이 숫자가 아닙니다: {raw!r}") from e


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} 값이 정수가 아닙니다: {raw!r}") from e


@dataclass(frozen=True)
class DeploymentConfig:
    """
    저장소 하나의 하위 디렉토리 -> Cloud Function 하나의 매핑.
    """

    repository: str
    path: str
    function_name: str
    location: str = DEFAULT_LOCATION
    entry_point: Optional[str] = None
    runtime: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], default_location: str = DEFAULT_LOCATION) -> "DeploymentConfig":
        missing = [k for k in ("repository", "path", "functionName") if not raw.get(k)]
        if missing:
            raise ValueError(
                "배포 설정에 필수 항목이 누락되었습니다: " + ", ".join(missing) + f" ({raw!r})"
            )
        return cls(
            repository=raw["repository"],
            path=raw["path"],
            function_name=raw["functionName"],
            location=raw.get("location") or default_location,
            entry_point=raw.get("entryPoint"),
            runtime=raw.get("runtime"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "repository": self.repository,
            "path": self.path,
            "functionName": self.function_name,
            "location": self.location,
        }
        if self.entry_point:
            data["entryPoint"] = self.entry_point
        if self.runtime:
            data["runtime"] = self.runtime
        return data


def load_deployments(path: str) -> Dict[str, Any]:
    """
    deployments.json 을 읽어 원본 dict 를 반환한다.

    형식::

        {
          "stageBucket": "my-bucket",
          "location": "us-central1",
          "deployments": [
            {"repository": "owner/repo", "path": "functions/hello", "functionName": "hello"}
          ]
        }
    """
    if not os.path.exists(path):
        raise ValueError(f"배포 설정 파일을 찾을 수 없습니다: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"배포 설정 파일이 올바른 JSON 이 아닙니다: {path} ({e})") from e

    if not isinstance(data, dict) or not isinstance(data.get("deployments"), list):
        raise ValueError(f"배포 설정 파일에 deployments 목록이 없습니다: {path}")
    return data


@dataclass
class RelayConfig:
    # 필수 공통
    gcp_project_id: str
    stage_bucket: str
    secret_token: str

    default_location: str = DEFAULT_LOCATION
    deployments: Tuple[DeploymentConfig, ...] = field(default_factory=tuple)

    scratch_dir: str = field(default_factory=tempfile.gettempdir)

    # Cloud Functions operation polling
    poll_interval: float = 0.5
    poll_max_attempts: int = 1200

    # 저장소 clone
    git_base_url: str = "https://github.com"
    fetch_timeout: float = 300.0

    @classmethod
    def from_env(cls, base_dir: str = ".") -> "RelayConfig":
        deployments_file = os.getenv("DEPLOYMENTS_FILE", DEFAULT_DEPLOYMENTS_FILE)
        if not os.path.isabs(deployments_file):
            deployments_file = os.path.join(base_dir, deployments_file)
        raw = load_deployments(deployments_file)

        # 환경변수가 파일 값보다 우선한다.
        missing: List[str] = []
        def req(name: str, file_value: Optional[str] = None, *aliases: str) -> str:
            for key in (name, *aliases):
                val = os.getenv(key)
                if val:
                    return val
            if file_value:
                return file_value
            missing.append(name)
            return ""

        project_id = req("GCP_PROJECT_ID", None, "GCLOUD_PROJECT", "GOOGLE_CLOUD_PROJECT")
        stage_bucket = req("STAGE_BUCKET", raw.get("stageBucket"))

        secret_token = os.getenv("GITHUB_WEBHOOK_SECRET") or raw.get("secretToken") or ""
        secret_name = os.getenv("GITHUB_WEBHOOK_SECRET_NAME")
        if not secret_token and not secret_name:
            missing.append("GITHUB_WEBHOOK_SECRET")

        if missing:
            raise ValueError(
                "필수 환경변수가 누락되었습니다: " + ", ".join(sorted(set(missing)))
            )

        if not secret_token:
            # Secret Manager 에서 webhook secret 을 읽는다.
            from .gcp_secrets import access_secret

            secret_token = access_secret(project_id, secret_name or "")

        default_location = os.getenv("FUNCTION_LOCATION") or raw.get("location") or DEFAULT_LOCATION
        deployments = tuple(
            DeploymentConfig.from_dict(d, default_location) for d in raw["deployments"]
        )

        cfg = cls(
            gcp_project_id=project_id,
            stage_bucket=stage_bucket,
            secret_token=secret_token,
            default_location=default_location,
            deployments=deployments,
            scratch_dir=os.getenv("SCRATCH_DIR") or tempfile.gettempdir(),
            poll_interval=_get_float("POLL_INTERVAL_SECONDS", 0.5),
            poll_max_attempts=_get_int("POLL_MAX_ATTEMPTS", 1200),
            git_base_url=os.getenv("GIT_BASE_URL", "https://github.com"),
            fetch_timeout=_get_float("GIT_FETCH_TIMEOUT_SECONDS", 300.0),
        )

        if cfg.poll_max_attempts < 1:
            raise ValueError("POLL_MAX_ATTEMPTS 는 1 이상이어야 합니다.")

        return cfg
