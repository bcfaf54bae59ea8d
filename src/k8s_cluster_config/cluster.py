"""Entry points producing a ClusterConfig from each supported source."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from k8s_cluster_config.config import Settings, get_settings
from k8s_cluster_config.errors import NotFound
from k8s_cluster_config.key_source import FromFile
from k8s_cluster_config.kubeconfig import default_kubeconfig_path, load_kubeconfig, parse_kubeconfig
from k8s_cluster_config.models import ClientConfig, ClusterConfig, Secure, ServiceAccountToken
from k8s_cluster_config.resolver import parse_host, resolve_context
from k8s_cluster_config.structured import decode_cluster_config

log = structlog.get_logger()

IN_CLUSTER_HOST = "https://kubernetes.default.svc"
SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")
SERVICE_ACCOUNT_TOKEN_PATH = SERVICE_ACCOUNT_DIR / "token"
SERVICE_ACCOUNT_CA_PATH = SERVICE_ACCOUNT_DIR / "ca.crt"

_SERVICE_HOST_ENV = "KUBERNETES_SERVICE_HOST"
_SERVICE_PORT_ENV = "KUBERNETES_SERVICE_PORT"


def from_kubeconfig(
    document: str,
    context: str | None = None,
    *,
    settings: Settings | None = None,
) -> ClusterConfig:
    """Parse kubeconfig text and resolve ``context`` (or the current context)."""
    return resolve_context(parse_kubeconfig(document), context, settings=settings)


def from_kubeconfig_file(
    path: str | Path | None = None,
    context: str | None = None,
    *,
    settings: Settings | None = None,
) -> ClusterConfig:
    """Load a kubeconfig file and resolve ``context`` (or the current context).

    Args:
        path: kubeconfig file. Defaults to ``$KUBECONFIG`` or ``~/.kube/config``.
        context: Context name. Defaults to the file's current context.
        settings: Resolution policies.

    Raises:
        NotFound: If no path is given and no kubeconfig file can be found.
    """
    if path is None:
        path = default_kubeconfig_path()
        if path is None:
            raise NotFound("kubeconfig", "$KUBECONFIG or ~/.kube/config")
    log.debug("loading_kubeconfig", path=str(path), context=context)
    return resolve_context(load_kubeconfig(path), context, settings=settings)


def from_structured_config(config: Mapping[str, Any], *, settings: Settings | None = None) -> ClusterConfig:
    """Decode a structured application configuration mapping."""
    return decode_cluster_config(config, settings=settings)


def _in_cluster_host() -> str:
    host = os.environ.get(_SERVICE_HOST_ENV)
    port = os.environ.get(_SERVICE_PORT_ENV)
    if not host or not port:
        return IN_CLUSTER_HOST
    if ":" in host:
        host = f"[{host}]"
    return f"https://{host}:{port}"


def in_cluster_config(*, settings: Settings | None = None) -> ClusterConfig:
    """Build the configuration of a workload running inside the cluster.

    Uses the mounted service account token and CA certificate. The API server
    address comes from ``KUBERNETES_SERVICE_HOST``/``KUBERNETES_SERVICE_PORT``
    when both are set, else ``https://kubernetes.default.svc``. No file is read
    here; the token is read each time a credential is needed.
    """
    settings = settings or get_settings()
    return ClusterConfig(
        host=parse_host(_in_cluster_host()),
        authentication=ServiceAccountToken(FromFile(SERVICE_ACCOUNT_TOKEN_PATH)),
        client=ClientConfig(
            debug=settings.debug,
            server_certificate=Secure(
                disable_hostname_verification=False,
                certificate=FromFile(SERVICE_ACCOUNT_CA_PATH),
            ),
        ),
    )


def default_cluster_config(*, settings: Settings | None = None) -> ClusterConfig:
    """Use the discoverable kubeconfig if there is one, otherwise in-cluster defaults."""
    path = default_kubeconfig_path()
    if path is not None:
        log.info("using_kubeconfig", path=str(path))
        return from_kubeconfig_file(path, settings=settings)
    log.info("using_in_cluster_config")
    return in_cluster_config(settings=settings)
