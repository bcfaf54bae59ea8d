"""Deferred materialization of an Authentication into a usable credential."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from k8s_cluster_config.config import get_settings
from k8s_cluster_config.exec_credential import ProcessRunner, run_exec_credential, subprocess_runner
from k8s_cluster_config.models import Authentication, BasicAuth, ClientCertificates, ExecPlugin, ServiceAccountToken


@dataclass(frozen=True)
class BearerToken:
    token: str = field(repr=False)


@dataclass(frozen=True)
class BasicCredentials:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ClientCertificatePair:
    certificate: bytes = field(repr=False)
    key: bytes = field(repr=False)


Credential = BearerToken | BasicCredentials | ClientCertificatePair

CredentialProvider = Callable[[], Credential]


def credential_provider(
    authentication: Authentication,
    *,
    runner: ProcessRunner = subprocess_runner,
    timeout: float | None = None,
) -> CredentialProvider:
    """Build a function that produces a fresh credential on every call.

    Building the provider performs no I/O. Each call reads token and
    certificate files again, or runs the exec plugin again, so rotated
    service account tokens and short-lived plugin tokens are picked up.

    Args:
        authentication: The resolved authentication strategy.
        runner: Process capability used for exec plugins.
        timeout: Exec plugin timeout in seconds. Defaults to the
            ``K8S_EXEC_TIMEOUT_SECONDS`` setting.

    Returns:
        A zero-argument callable returning a Credential.
    """
    match authentication:
        case ServiceAccountToken(token=source):
            return lambda: BearerToken(source.resolve_text().strip())
        case BasicAuth(username=username, password=password):
            credentials = BasicCredentials(username, password)
            return lambda: credentials
        case ClientCertificates(certificate=certificate, key=key):
            return lambda: ClientCertificatePair(certificate.resolve(), key.resolve())
        case ExecPlugin(config=config):
            exec_timeout = timeout if timeout is not None else get_settings().exec_timeout_seconds
            return lambda: BearerToken(run_exec_credential(config, exec_timeout, runner=runner))
    msg = f"Unsupported authentication: {type(authentication).__name__}"
    raise TypeError(msg)
