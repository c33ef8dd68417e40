from typing import Dict, List

import pytest

from gcf_autodeploy import gcp_auth
from gcf_autodeploy.config import RelayConfig
from gcf_autodeploy.gcp_auth import AppContext, build_context


CFG = RelayConfig(gcp_project_id="test-project", stage_bucket="B", secret_token="s")


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> Dict[str, List]:
    recorded: Dict[str, List] = {"default": [], "storage": [], "functions": []}
    credentials = object()

    def fake_default(scopes=None):
        recorded["default"].append(scopes)
        return credentials, "adc-project"

    class FakeStorage:
        def __init__(self, project=None, credentials=None) -> None:
            recorded["storage"].append((project, credentials))

        def bucket(self, name: str):
            return ("bucket", name)

    class FakeFunctions:
        def __init__(self, credentials=None) -> None:
            recorded["functions"].append(credentials)

    monkeypatch.setattr(gcp_auth.google.auth, "default", fake_default)
    monkeypatch.setattr(gcp_auth.storage, "Client", FakeStorage)
    monkeypatch.setattr(gcp_auth.functions_v1, "CloudFunctionsServiceClient", FakeFunctions)
    recorded["credentials"] = [credentials]
    return recorded


def test_clients_are_built_once(calls) -> None:
    ctx = AppContext(CFG)

    first = ctx.storage_client
    assert ctx.storage_client is first
    functions = ctx.functions_client
    assert ctx.functions_client is functions
    assert ctx.stage_bucket == ("bucket", "B")

    assert calls["default"] == [[gcp_auth.CLOUD_PLATFORM_SCOPE]]
    assert calls["storage"] == [("test-project", calls["credentials"][0])]
    assert calls["functions"] == [calls["credentials"][0]]


def test_clients_are_lazy(calls) -> None:
    AppContext(CFG)

    assert calls["default"] == []
    assert calls["storage"] == []
    assert calls["functions"] == []


def test_build_context_builds_clients_eagerly(calls) -> None:
    ctx = build_context(CFG)

    assert len(calls["storage"]) == 1
    assert len(calls["functions"]) == 1
    assert len(calls["default"]) == 1

    ctx.storage_client
    ctx.functions_client
    assert len(calls["storage"]) == 1
    assert len(calls["functions"]) == 1


def test_injected_clients_skip_adc(calls) -> None:
    storage_client = object()
    functions_client = object()
    ctx = AppContext(CFG, storage_client=storage_client, functions_client=functions_client)

    assert ctx.storage_client is storage_client
    assert ctx.functions_client is functions_client
    assert calls["default"] == []
