"""Shared test fixtures for all test modules."""

from __future__ import annotations

import json
import sys
from typing import Any

import pytest
import yaml

from k8s_cluster_config.config import DuplicateNamePolicy, MissingCaPolicy, Settings
from k8s_cluster_config.exec_credential import ProcessResult

# kubeconfig whose user obtains a token from an exec plugin that echoes an ExecCredential
EXEC_KUBECONFIG = """apiVersion: v1
clusters:
- cluster:
    certificate-authority-data: DDDDAAAANNNNYYYYMMMMOOOORRRR
    server: https://127.0.0.1:696
  name: test_cluster
contexts:
- context:
    cluster: test_cluster
    namespace: test_namespace
    user: test_user
  name: test
current-context: test
kind: Config
preferences: {}
users:
- name: test_user
  user:
    exec:
      apiVersion: client.authentication.k8s.io/v1alpha1
      args:
      - "{ \\"apiVersion\\": \\"client.authentication.k8s.io/v1alpha1\\", \\"kind\\": \\"ExecCredential\\", \\"status\\": {\\"token\\": \\"bearer-token\\" }}"
      command: echo
      env:
      - name: BEARER_TOKEN
        value: bearer-token
"""

STRUCTURED_CONFIG = """k8s:
  host: "https://kubernetes.default.svc"
  authentication:
    serviceAccountToken:
      path: "/var/run/secrets/kubernetes.io/serviceaccount/token"
  client:
    debug: false
    secure:
      certificate:
        path: "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
      disableHostnameVerification: false
"""

_ENV_VARS = (
    "K8S_EXEC_TIMEOUT_SECONDS",
    "K8S_DUPLICATE_NAME_POLICY",
    "K8S_MISSING_CA_POLICY",
    "K8S_CLIENT_DEBUG",
    "KUBECONFIG",
    "KUBERNETES_SERVICE_HOST",
    "KUBERNETES_SERVICE_PORT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment variables that change resolution behaviour."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings(
        exec_timeout_seconds=30.0,
        duplicate_names=DuplicateNamePolicy.FIRST,
        missing_ca=MissingCaPolicy.SYSTEM,
        debug=False,
    )


@pytest.fixture
def strict_settings() -> Settings:
    """Settings that reject duplicate names and missing certificate authorities."""
    return Settings(
        exec_timeout_seconds=30.0,
        duplicate_names=DuplicateNamePolicy.ERROR,
        missing_ca=MissingCaPolicy.ERROR,
        debug=False,
    )


class FakeRunner:
    """ProcessRunner double that records calls and replays a canned outcome."""

    def __init__(self, result: ProcessResult | None = None, error: BaseException | None = None) -> None:
        self.result = result or ProcessResult(exit_code=0, stdout=exec_credential_json("bearer-token"), stderr="")
        self.error = error
        self.calls: list[tuple[list[str], dict[str, str], float]] = []

    def __call__(self, argv: list[str], env: dict[str, str], timeout: float) -> ProcessResult:
        self.calls.append((argv, env, timeout))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


def exec_credential_json(token: str, kind: str = "ExecCredential") -> str:
    """Render an ExecCredential response as printed by a plugin."""
    return json.dumps(
        {
            "apiVersion": "client.authentication.k8s.io/v1beta1",
            "kind": kind,
            "status": {"token": token},
        }
    )


def python_exec(script: str) -> dict[str, Any]:
    """Build an exec block that runs ``script`` with the current interpreter."""
    return {
        "apiVersion": "client.authentication.k8s.io/v1beta1",
        "command": sys.executable,
        "args": ["-c", script],
    }


def make_kubeconfig(
    clusters: list[dict[str, Any]] | None = None,
    contexts: list[dict[str, Any]] | None = None,
    users: list[dict[str, Any]] | None = None,
    current_context: str | None = "main",
) -> str:
    """Render a kubeconfig document. Defaults describe one token-authenticated context."""
    document: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": clusters
        if clusters is not None
        else [{"name": "main-cluster", "cluster": {"server": "https://10.0.0.1:6443"}}],
        "contexts": contexts
        if contexts is not None
        else [{"name": "main", "context": {"cluster": "main-cluster", "user": "main-user"}}],
        "users": users if users is not None else [{"name": "main-user", "user": {"token": "main-token"}}],
    }
    if current_context is not None:
        document["current-context"] = current_context
    return yaml.safe_dump(document, sort_keys=False)


@pytest.fixture
def exec_kubeconfig() -> str:
    return EXEC_KUBECONFIG


@pytest.fixture
def structured_config_text() -> str:
    return STRUCTURED_CONFIG


@pytest.fixture
def make_runner() -> type[FakeRunner]:
    """Factory for ProcessRunner doubles with a custom outcome."""
    return FakeRunner


@pytest.fixture
def credential_json() -> Any:
    """Factory rendering ExecCredential stdout payloads."""
    return exec_credential_json


@pytest.fixture
def kubeconfig_text() -> Any:
    """Factory rendering kubeconfig documents."""
    return make_kubeconfig


@pytest.fixture
def python_plugin() -> Any:
    """Factory for exec blocks that run a Python snippet."""
    return python_exec
