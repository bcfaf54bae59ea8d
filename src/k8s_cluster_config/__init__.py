"""Resolution of Kubernetes API connection and credential configuration."""

from k8s_cluster_config.cluster import (
    default_cluster_config,
    from_kubeconfig,
    from_kubeconfig_file,
    from_structured_config,
    in_cluster_config,
)
from k8s_cluster_config.config import DuplicateNamePolicy, MissingCaPolicy, Settings, get_settings
from k8s_cluster_config.credentials import (
    BasicCredentials,
    BearerToken,
    ClientCertificatePair,
    Credential,
    credential_provider,
)
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
from k8s_cluster_config.exec_credential import ProcessResult, ProcessRunner, run_exec_credential
from k8s_cluster_config.key_source import FromFile, FromString, KeySource
from k8s_cluster_config.kubeconfig import load_kubeconfig, parse_kubeconfig
from k8s_cluster_config.log_config import configure_logging
from k8s_cluster_config.models import (
    Authentication,
    BasicAuth,
    ClientCertificates,
    ClientConfig,
    ClusterConfig,
    ClusterInfo,
    ContextInfo,
    ExecConfig,
    ExecEnvVar,
    ExecPlugin,
    Insecure,
    Kubeconfig,
    Secure,
    ServerCertificate,
    ServiceAccountToken,
    UserInfo,
)
from k8s_cluster_config.resolver import resolve_authentication, resolve_context, resolve_server_certificate
from k8s_cluster_config.structured import decode_cluster_config, load_structured_config, parse_structured_config

__all__ = [
    "AmbiguousConfig",
    "Authentication",
    "BasicAuth",
    "BasicCredentials",
    "BearerToken",
    "ClientCertificatePair",
    "ClientCertificates",
    "ClientConfig",
    "ClusterConfig",
    "ClusterConfigError",
    "ClusterInfo",
    "ContextInfo",
    "Credential",
    "DuplicateNamePolicy",
    "ExecConfig",
    "ExecCredentialError",
    "ExecEnvVar",
    "ExecPlugin",
    "ExecutionFailed",
    "FromFile",
    "FromString",
    "Insecure",
    "InvalidURI",
    "KeySource",
    "KeySourceReadError",
    "Kubeconfig",
    "MissingCaPolicy",
    "MissingConfig",
    "NotFound",
    "ParseError",
    "ProcessResult",
    "ProcessRunner",
    "Secure",
    "ServerCertificate",
    "ServiceAccountToken",
    "Settings",
    "UserInfo",
    "configure_logging",
    "credential_provider",
    "decode_cluster_config",
    "default_cluster_config",
    "from_kubeconfig",
    "from_kubeconfig_file",
    "from_structured_config",
    "get_settings",
    "in_cluster_config",
    "load_kubeconfig",
    "load_structured_config",
    "parse_kubeconfig",
    "parse_structured_config",
    "resolve_authentication",
    "resolve_context",
    "resolve_server_certificate",
    "run_exec_credential",
]
