import json
import os

import pytest

from gcf_autodeploy import config as config_mod
from gcf_autodeploy.config import DeploymentConfig, RelayConfig


def _write_deployments(tmp_path, data: dict) -> str:
    path = tmp_path / "deployments.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def _base_env(monkeypatch: pytest.MonkeyPatch, deployments_file: str) -> None:
    monkeypatch.setenv("GCP_PROJECT_ID", "test-project")
    monkeypatch.setenv("STAGE_BUCKET", "stage-bucket")
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", "s3cret")
    monkeypatch.setenv("DEPLOYMENTS_FILE", deployments_file)


def test_from_env_loads_deployments(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_deployments(tmp_path, {
        "location": "europe-west1",
        "deployments": [
            {"repository": "acme/app", "path": "functions/hello", "functionName": "hello"},
            {"repository": "acme/app", "path": "functions/bye", "functionName": "bye",
             "location": "asia-northeast3", "entryPoint": "main", "runtime": "python312"},
        ],
    })
    _base_env(monkeypatch, path)

    cfg = RelayConfig.from_env()

    assert cfg.gcp_project_id == "test-project"
    assert cfg.default_location == "europe-west1"
    assert cfg.deployments[0] == DeploymentConfig("acme/app", "functions/hello", "hello", "europe-west1")
    assert cfg.deployments[1].location == "asia-northeast3"
    assert cfg.deployments[1].to_dict() == {
        "repository": "acme/app",
        "path": "functions/bye",
        "functionName": "bye",
        "location": "asia-northeast3",
        "entryPoint": "main",
        "runtime": "python312",
    }
    assert cfg.poll_interval == 0.5


def test_missing_required_env_raises_value_error(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_deployments(tmp_path, {"deployments": []})
    _base_env(monkeypatch, path)
    monkeypatch.delenv("GCP_PROJECT_ID", raising=False)
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)

    with pytest.raises(ValueError) as excinfo:
        RelayConfig.from_env()

    assert "GCP_PROJECT_ID" in str(excinfo.value)
    assert "GITHUB_WEBHOOK_SECRET" in str(excinfo.value)


def test_file_values_used_when_env_missing(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_deployments(tmp_path, {
        "stageBucket": "file-bucket",
        "secretToken": "file-secret",
        "deployments": [],
    })
    _base_env(monkeypatch, path)
    monkeypatch.delenv("STAGE_BUCKET", raising=False)
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)

    cfg = RelayConfig.from_env()

    assert cfg.stage_bucket == "file-bucket"
    assert cfg.secret_token == "file-secret"
    assert cfg.default_location == config_mod.DEFAULT_LOCATION


def test_secret_name_reads_secret_manager(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    from gcf_autodeploy import gcp_secrets

    path = _write_deployments(tmp_path, {"deployments": []})
    _base_env(monkeypatch, path)
    monkeypatch.delenv("GITHUB_WEBHOOK_SECRET", raising=False)
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET_NAME", "webhook-secret")

    calls = []

    def fake_access(project_id: str, secret_id: str, version: str = "latest") -> str:
        calls.append((project_id, secret_id))
        return "from-secret-manager"

    monkeypatch.setattr(gcp_secrets, "access_secret", fake_access)

    cfg = RelayConfig.from_env()

    assert cfg.secret_token == "from-secret-manager"
    assert calls == [("test-project", "webhook-secret")]


def test_deployment_missing_function_name(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_deployments(tmp_path, {
        "deployments": [{"repository": "acme/app", "path": "fn"}],
    })
    _base_env(monkeypatch, path)

    with pytest.raises(ValueError) as excinfo:
        RelayConfig.from_env()

    assert "functionName" in str(excinfo.value)


def test_missing_deployments_file(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    _base_env(monkeypatch, os.path.join(str(tmp_path), "nope.json"))

    with pytest.raises(ValueError):
        RelayConfig.from_env()


def test_invalid_poll_max_attempts(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write_deployments(tmp_path, {"deployments": []})
    _base_env(monkeypatch, path)
    monkeypatch.setenv("POLL_MAX_ATTEMPTS", "0")

    with pytest.raises(ValueError) as excinfo:
        RelayConfig.from_env()

    assert "POLL_MAX_ATTEMPTS" in str(excinfo.value)
