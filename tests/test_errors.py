"""Tests for errors.py: the error taxonomy and its messages."""

from __future__ import annotations

import pytest

from k8s_cluster_config.errors import (
    AmbiguousConfig,
    ClusterConfigError,
    ExecCredentialError,
    ExecutionFailed,
    InvalidURI,
    KeySourceReadError,
    MissingConfig,
    NotFound,
    ParseError,
)


class TestErrorHierarchy:
    @pytest.mark.parametrize(
        ("error", "builtin"),
        [
            (ParseError("clusters[0].cluster.server", "Field required"), ValueError),
            (InvalidURI("nope"), ValueError),
            (NotFound("context", "prod"), LookupError),
            (AmbiguousConfig("client"), ValueError),
            (MissingConfig("host"), ValueError),
            (KeySourceReadError("/token", FileNotFoundError(2, "No such file or directory")), OSError),
            (ExecutionFailed("kubelogin", exit_code=1), RuntimeError),
            (ExecCredentialError("missing token"), ValueError),
        ],
    )
    def test_errors_share_base_and_builtin(self, error: Exception, builtin: type[Exception]) -> None:
        assert isinstance(error, ClusterConfigError)
        assert isinstance(error, builtin)


class TestErrorMessages:
    def test_not_found(self) -> None:
        assert str(NotFound("context", "prod")) == "No context found for 'prod'"

    def test_ambiguous_lists_alternatives(self) -> None:
        assert "secure, insecure" in str(AmbiguousConfig("client", ("secure", "insecure")))

    def test_missing_lists_alternatives(self) -> None:
        assert "expected one of: path, value" in str(MissingConfig("token", ("path", "value")))

    def test_read_error_names_path_and_cause(self) -> None:
        message = str(KeySourceReadError("/token", FileNotFoundError(2, "No such file or directory")))
        assert message == "Failed to read /token: No such file or directory"

    def test_execution_failed_variants(self) -> None:
        assert "timed out" in str(ExecutionFailed("kubelogin", timed_out=True))
        assert "exited with code 3" in str(ExecutionFailed("kubelogin", exit_code=3, stderr="secret stderr"))
        assert "secret stderr" not in str(ExecutionFailed("kubelogin", exit_code=3, stderr="secret stderr"))
