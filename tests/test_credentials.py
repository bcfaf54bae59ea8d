"""Tests for credentials.py: deferred, per-call credential materialization."""

from __future__ import annotations

import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import pytest
import yaml

from k8s_cluster_config.cluster import from_kubeconfig_file
from k8s_cluster_config.credentials import (
    BasicCredentials,
    BearerToken,
    ClientCertificatePair,
    credential_provider,
)
from k8s_cluster_config.errors import KeySourceReadError, ParseError
from k8s_cluster_config.key_source import FromFile, FromString
from k8s_cluster_config.models import (
    BasicAuth,
    ClientCertificates,
    ExecConfig,
    ExecEnvVar,
    ExecPlugin,
    ServiceAccountToken,
)

_EXEC = ExecConfig(api_version="client.authentication.k8s.io/v1beta1", command="kubelogin")


class TestServiceAccountToken:
    def test_inline_token(self) -> None:
        provider = credential_provider(ServiceAccountToken(FromString("abc")))
        assert provider() == BearerToken("abc")

    def test_file_token_is_reread_on_each_call(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        provider = credential_provider(ServiceAccountToken(FromFile(token_file)))
        token_file.write_text("first\n")
        assert provider() == BearerToken("first")
        token_file.write_text("rotated\n")
        assert provider() == BearerToken("rotated")

    def test_missing_file_fails_on_use_not_on_build(self, tmp_path: Path) -> None:
        provider = credential_provider(ServiceAccountToken(FromFile(tmp_path / "missing")))
        with pytest.raises(KeySourceReadError):
            provider()

    def test_token_file_not_utf8(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_bytes(b"\xff\xfe")
        provider = credential_provider(ServiceAccountToken(FromFile(token_file)))
        with pytest.raises(ParseError) as exc_info:
            provider()
        assert exc_info.value.field == str(token_file)

    def test_repr_hides_token(self) -> None:
        assert "abc" not in repr(BearerToken("abc"))


class TestOtherStrategies:
    def test_basic_auth(self) -> None:
        provider = credential_provider(BasicAuth("admin", "secret"))
        assert provider() == BasicCredentials("admin", "secret")

    def test_client_certificates(self, tmp_path: Path) -> None:
        (tmp_path / "tls.crt").write_bytes(b"CERT")
        provider = credential_provider(
            ClientCertificates(certificate=FromFile(tmp_path / "tls.crt"), key=FromString(b"KEY"))
        )
        assert provider() == ClientCertificatePair(b"CERT", b"KEY")

    def test_unsupported_authentication(self) -> None:
        with pytest.raises(TypeError, match="Unsupported authentication"):
            credential_provider("token")  # type: ignore[arg-type]


class TestExecPlugin:
    def test_building_provider_does_not_run_plugin(self, fake_runner: Any) -> None:
        credential_provider(ExecPlugin(_EXEC), runner=fake_runner)
        assert fake_runner.calls == []

    def test_each_call_runs_plugin(self, fake_runner: Any) -> None:
        provider = credential_provider(ExecPlugin(_EXEC), runner=fake_runner, timeout=3.0)
        assert provider() == BearerToken("bearer-token")
        assert provider() == BearerToken("bearer-token")
        assert [timeout for _, _, timeout in fake_runner.calls] == [3.0, 3.0]

    def test_timeout_from_settings(self, fake_runner: Any, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("K8S_EXEC_TIMEOUT_SECONDS", "7")
        credential_provider(ExecPlugin(_EXEC), runner=fake_runner)()
        assert fake_runner.calls[0][2] == 7.0

    def test_kubeconfig_exec_end_to_end(self, tmp_path: Path, kubeconfig_text: Any, python_plugin: Any) -> None:
        script = (
            "import json, os; print(json.dumps({'apiVersion': 'client.authentication.k8s.io/v1beta1', "
            "'kind': 'ExecCredential', 'status': {'token': os.environ['BEARER_TOKEN']}}))"
        )
        exec_block = python_plugin(script)
        exec_block["env"] = [{"name": "BEARER_TOKEN", "value": "bearer-token"}]
        path = tmp_path / "config"
        path.write_text(kubeconfig_text(users=[{"name": "main-user", "user": {"exec": exec_block}}]))

        config = from_kubeconfig_file(path)
        assert config.authentication == ExecPlugin(
            ExecConfig(
                api_version="client.authentication.k8s.io/v1beta1",
                command=sys.executable,
                args=("-c", script),
                env=frozenset({ExecEnvVar("BEARER_TOKEN", "bearer-token")}),
            )
        )
        assert credential_provider(config.authentication, timeout=10.0)() == BearerToken("bearer-token")

    def test_echo_plugin_document(self, tmp_path: Path, exec_kubeconfig: str) -> None:
        # The plugin in this document echoes its single argument back as the ExecCredential
        document = yaml.safe_load(exec_kubeconfig)
        exec_block = document["users"][0]["user"]["exec"]
        exec_block["args"] = ["-c", f"print({exec_block['args'][0]!r})"]
        exec_block["command"] = sys.executable
        path = tmp_path / "config"
        path.write_text(yaml.safe_dump(document))

        config = from_kubeconfig_file(path, "test")
        assert credential_provider(config.authentication, timeout=10.0)() == BearerToken("bearer-token")


class TestConcurrentUse:
    def test_file_token_from_many_threads(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("shared\n")
        provider = credential_provider(ServiceAccountToken(FromFile(token_file)))
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: provider(), range(32)))
        assert results == [BearerToken("shared")] * 32

    def test_exec_plugin_from_many_threads(self, fake_runner: Any) -> None:
        provider = credential_provider(ExecPlugin(_EXEC), runner=fake_runner, timeout=3.0)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: provider(), range(32)))
        assert results == [BearerToken("bearer-token")] * 32
        assert len(fake_runner.calls) == 32
