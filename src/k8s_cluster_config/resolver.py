"""Selection of one authentication strategy and server certificate per kubeconfig context."""

from __future__ import annotations

import structlog
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError

from k8s_cluster_config.config import MissingCaPolicy, Settings, get_settings
from k8s_cluster_config.errors import InvalidURI, MissingConfig, NotFound
from k8s_cluster_config.models import (
    Authentication,
    BasicAuth,
    ClientCertificates,
    ClientConfig,
    ClusterConfig,
    ClusterInfo,
    ExecPlugin,
    Insecure,
    Kubeconfig,
    Secure,
    ServerCertificate,
    ServiceAccountToken,
    UserInfo,
)

log = structlog.get_logger()

DEFAULT_NAMESPACE = "default"

_URL_ADAPTER: TypeAdapter[AnyHttpUrl] = TypeAdapter(AnyHttpUrl)


def parse_host(raw: str) -> AnyHttpUrl:
    """Parse an API server address.

    Raises:
        InvalidURI: If ``raw`` is not an absolute http(s) URI.
    """
    try:
        return _URL_ADAPTER.validate_python(raw)
    except ValidationError:
        raise InvalidURI(raw) from None


def resolve_authentication(user: UserInfo, *, user_name: str) -> Authentication:
    """Pick exactly one authentication strategy for a kubeconfig user.

    kubeconfig allows several credential fields on one user. The first
    populated one wins, in this order: token, client certificate and key,
    username and password, exec plugin. The exec plugin is not run here.

    Raises:
        NotFound: If the user carries no usable credential.
    """
    if user.token is not None:
        return ServiceAccountToken(user.token)
    if user.client_certificate is not None and user.client_key is not None:
        return ClientCertificates(certificate=user.client_certificate, key=user.client_key)
    if user.username is not None and user.password is not None:
        return BasicAuth(username=user.username, password=user.password)
    if user.exec is not None:
        return ExecPlugin(user.exec)
    raise NotFound("authentication", user_name)


def resolve_server_certificate(
    cluster: ClusterInfo,
    *,
    cluster_name: str = "",
    missing_ca: MissingCaPolicy = MissingCaPolicy.SYSTEM,
) -> ServerCertificate:
    """Derive TLS verification settings for a cluster.

    Without a certificate authority the result is ``Secure`` with no
    certificate, meaning the platform trust store applies, unless
    ``missing_ca`` is ``ERROR``.

    Raises:
        MissingConfig: If no certificate authority is set and the policy forbids that.
    """
    if cluster.insecure_skip_tls_verify:
        return Insecure()
    if cluster.certificate_authority is None and missing_ca is MissingCaPolicy.ERROR:
        raise MissingConfig(
            f"clusters[{cluster_name}].certificate-authority",
            ("certificate-authority", "certificate-authority-data", "insecure-skip-tls-verify"),
        )
    return Secure(disable_hostname_verification=False, certificate=cluster.certificate_authority)


def _context_name(kubeconfig: Kubeconfig, context_name: str | None) -> str:
    name = context_name or kubeconfig.current_context
    if not name:
        raise NotFound("context", "")
    return name


def resolve_context(
    kubeconfig: Kubeconfig,
    context_name: str | None = None,
    *,
    settings: Settings | None = None,
) -> ClusterConfig:
    """Resolve a kubeconfig context into a ClusterConfig.

    Args:
        kubeconfig: The parsed document.
        context_name: Context to use. Defaults to the document's current context.
        settings: Resolution policies. Defaults to ``get_settings()``.

    Returns:
        The ClusterConfig for the context. Credentials are not read yet.

    Raises:
        NotFound: If the context, or the cluster or user it references, does not exist.
        AmbiguousConfig: If a referenced name is duplicated and the policy forbids that.
        InvalidURI: If the cluster's server address is malformed.
        MissingConfig: If the cluster has no certificate authority and the policy forbids that.
    """
    settings = settings or get_settings()
    policy = settings.duplicate_names
    name = _context_name(kubeconfig, context_name)

    context = kubeconfig.find_context(name, policy)
    if context is None:
        log.warning("kubeconfig_context_not_found", context=name)
        raise NotFound("context", name)
    cluster = kubeconfig.find_cluster(context.cluster, policy)
    if cluster is None:
        log.warning("kubeconfig_cluster_not_found", context=name, cluster=context.cluster)
        raise NotFound("cluster", context.cluster)
    user = kubeconfig.find_user(context.user, policy)
    if user is None:
        log.warning("kubeconfig_user_not_found", context=name, user=context.user)
        raise NotFound("user", context.user)

    config = ClusterConfig(
        host=parse_host(cluster.server),
        authentication=resolve_authentication(user, user_name=context.user),
        client=ClientConfig(
            debug=settings.debug,
            server_certificate=resolve_server_certificate(
                cluster, cluster_name=context.cluster, missing_ca=settings.missing_ca
            ),
        ),
    )
    log.info(
        "kubeconfig_context_resolved",
        context=name,
        cluster=context.cluster,
        user=context.user,
        authentication=type(config.authentication).__name__,
    )
    return config


def context_namespace(kubeconfig: Kubeconfig, context_name: str | None = None) -> str:
    """Return the namespace configured on a context, or ``"default"``.

    Raises:
        NotFound: If the context does not exist.
    """
    name = _context_name(kubeconfig, context_name)
    context = kubeconfig.find_context(name)
    if context is None:
        raise NotFound("context", name)
    return context.namespace or DEFAULT_NAMESPACE
