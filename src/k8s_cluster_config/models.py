"""Immutable entities for kubeconfig documents and resolved cluster configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TypeVar

from pydantic import AnyHttpUrl

from k8s_cluster_config.config import DuplicateNamePolicy
from k8s_cluster_config.errors import AmbiguousConfig
from k8s_cluster_config.key_source import KeySource

# --- Kubeconfig entities ---


@dataclass(frozen=True)
class ExecEnvVar:
    """One environment variable passed to an exec credential plugin."""

    name: str
    value: str = field(repr=False)


@dataclass(frozen=True)
class ExecConfig:
    """Command line of an exec credential plugin."""

    api_version: str
    command: str
    args: tuple[str, ...] = ()
    env: frozenset[ExecEnvVar] = frozenset()
    install_hint: str | None = None


@dataclass(frozen=True)
class ClusterInfo:
    server: str
    insecure_skip_tls_verify: bool = False
    certificate_authority: KeySource | None = None


@dataclass(frozen=True)
class ContextInfo:
    cluster: str
    user: str
    namespace: str | None = None


@dataclass(frozen=True)
class UserInfo:
    """Credential fields of a kubeconfig user. Several may be set at once."""

    token: KeySource | None = None
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    client_certificate: KeySource | None = None
    client_key: KeySource | None = None
    exec: ExecConfig | None = None


@dataclass(frozen=True)
class NamedCluster:
    name: str
    cluster: ClusterInfo


@dataclass(frozen=True)
class NamedContext:
    name: str
    context: ContextInfo


@dataclass(frozen=True)
class NamedUser:
    name: str
    user: UserInfo


_Named = TypeVar("_Named", NamedCluster, NamedContext, NamedUser)


def _find(
    entries: tuple[_Named, ...],
    name: str,
    field_name: str,
    policy: DuplicateNamePolicy,
) -> _Named | None:
    matches = [entry for entry in entries if entry.name == name]
    if not matches:
        return None
    if len(matches) > 1 and policy is DuplicateNamePolicy.ERROR:
        raise AmbiguousConfig(f"{field_name}[{name}]")
    return matches[0]


@dataclass(frozen=True)
class Kubeconfig:
    """A parsed kubeconfig document.

    Entries keep document order. Names are not required to be unique; lookups
    select the first entry with a given name unless the policy forbids
    duplicates.
    """

    clusters: tuple[NamedCluster, ...] = ()
    contexts: tuple[NamedContext, ...] = ()
    users: tuple[NamedUser, ...] = ()
    current_context: str | None = None

    def find_cluster(self, name: str, policy: DuplicateNamePolicy = DuplicateNamePolicy.FIRST) -> ClusterInfo | None:
        entry = _find(self.clusters, name, "clusters", policy)
        return entry.cluster if entry else None

    def find_context(self, name: str, policy: DuplicateNamePolicy = DuplicateNamePolicy.FIRST) -> ContextInfo | None:
        entry = _find(self.contexts, name, "contexts", policy)
        return entry.context if entry else None

    def find_user(self, name: str, policy: DuplicateNamePolicy = DuplicateNamePolicy.FIRST) -> UserInfo | None:
        entry = _find(self.users, name, "users", policy)
        return entry.user if entry else None


# --- Authentication strategies ---


@dataclass(frozen=True)
class ServiceAccountToken:
    token: KeySource


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class ClientCertificates:
    certificate: KeySource
    key: KeySource


@dataclass(frozen=True)
class ExecPlugin:
    """Token obtained from an exec credential plugin when the credential is used."""

    config: ExecConfig


Authentication = ServiceAccountToken | BasicAuth | ClientCertificates | ExecPlugin


# --- Server certificate handling ---


@dataclass(frozen=True)
class Insecure:
    """TLS verification disabled."""


@dataclass(frozen=True)
class Secure:
    """TLS verification enabled.

    ``certificate`` None means the platform trust store validates the server.
    """

    disable_hostname_verification: bool = False
    certificate: KeySource | None = None


ServerCertificate = Insecure | Secure


# --- Resolved output ---


@dataclass(frozen=True)
class ClientConfig:
    server_certificate: ServerCertificate
    debug: bool = False


@dataclass(frozen=True)
class ClusterConfig:
    """Everything the transport layer needs to reach and authenticate against one cluster."""

    host: AnyHttpUrl
    authentication: Authentication
    client: ClientConfig
