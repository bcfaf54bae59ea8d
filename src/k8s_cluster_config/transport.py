"""Hand-off of a ClusterConfig to the ``kubernetes`` Python client."""

from __future__ import annotations

import base64
import contextlib
import os
import tempfile
from collections.abc import Iterator
from pathlib import Path

import structlog
from kubernetes import client as k8s_client

from k8s_cluster_config.credentials import (
    BasicCredentials,
    BearerToken,
    ClientCertificatePair,
    Credential,
    credential_provider,
)
from k8s_cluster_config.exec_credential import ProcessRunner, subprocess_runner
from k8s_cluster_config.key_source import FromFile, FromString
from k8s_cluster_config.models import ClusterConfig, Insecure, Secure

log = structlog.get_logger()

_AUTHORIZATION = "authorization"


def _write_material(material_dir: Path, name: str, content: bytes) -> str:
    path = material_dir / name
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(content)
    return str(path)


def _authorization_header(credential: BearerToken | BasicCredentials) -> str:
    if isinstance(credential, BearerToken):
        return f"Bearer {credential.token}"
    encoded = base64.b64encode(f"{credential.username}:{credential.password}".encode()).decode("ascii")
    return f"Basic {encoded}"


def build_configuration(
    cluster_config: ClusterConfig,
    material_dir: Path,
    *,
    runner: ProcessRunner = subprocess_runner,
    timeout: float | None = None,
) -> k8s_client.Configuration:
    """Translate a ClusterConfig into a ``kubernetes.client.Configuration``.

    The credential is materialized once up front, so a broken token file or
    exec plugin fails here rather than on the first request. Header based
    credentials are then re-resolved before every request through
    ``refresh_api_key_hook``. Client certificates and in-memory CA data are
    written into ``material_dir`` and are only read when the connection pool
    is created.

    Args:
        cluster_config: The resolved configuration.
        material_dir: Private directory for certificate and key files. The
            caller owns its lifetime.
        runner: Process capability used for exec plugins.
        timeout: Exec plugin timeout in seconds.

    Returns:
        A configured client Configuration.
    """
    configuration = k8s_client.Configuration()
    configuration.host = str(cluster_config.host).rstrip("/")
    configuration.debug = cluster_config.client.debug

    match cluster_config.client.server_certificate:
        case Insecure():
            configuration.verify_ssl = False
        case Secure(disable_hostname_verification=disable_hostname, certificate=certificate):
            configuration.verify_ssl = True
            if disable_hostname:
                configuration.assert_hostname = False
            if isinstance(certificate, FromFile):
                configuration.ssl_ca_cert = str(certificate.path)
            elif isinstance(certificate, FromString):
                configuration.ssl_ca_cert = _write_material(material_dir, "ca.crt", certificate.resolve())

    provider = credential_provider(cluster_config.authentication, runner=runner, timeout=timeout)
    credential: Credential = provider()
    if isinstance(credential, ClientCertificatePair):
        configuration.cert_file = _write_material(material_dir, "client.crt", credential.certificate)
        configuration.key_file = _write_material(material_dir, "client.key", credential.key)
    else:
        configuration.api_key[_AUTHORIZATION] = _authorization_header(credential)

        def refresh(config: k8s_client.Configuration) -> None:
            fresh = provider()
            config.api_key[_AUTHORIZATION] = _authorization_header(fresh)  # type: ignore[arg-type]

        configuration.refresh_api_key_hook = refresh

    log.debug(
        "client_configuration_built",
        host=configuration.host,
        verify_ssl=configuration.verify_ssl,
        authentication=type(cluster_config.authentication).__name__,
    )
    return configuration


@contextlib.contextmanager
def api_client(
    cluster_config: ClusterConfig,
    *,
    runner: ProcessRunner = subprocess_runner,
    timeout: float | None = None,
) -> Iterator[k8s_client.ApiClient]:
    """Yield an isolated ``ApiClient`` for one cluster.

    Certificate material lives in a temporary directory that is removed when
    the block exits, on success or failure. No global SDK configuration is
    touched.
    """
    with tempfile.TemporaryDirectory(prefix="k8s-cluster-config-") as material_dir:
        configuration = build_configuration(cluster_config, Path(material_dir), runner=runner, timeout=timeout)
        client = k8s_client.ApiClient(configuration)
        try:
            yield client
        finally:
            client.close()
