"""Kubeconfig document parsing and file discovery."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from k8s_cluster_config.errors import KeySourceReadError, ParseError
from k8s_cluster_config.key_source import FromString, KeySource, key_source_from
from k8s_cluster_config.models import (
    ClusterInfo,
    ContextInfo,
    ExecConfig,
    ExecEnvVar,
    Kubeconfig,
    NamedCluster,
    NamedContext,
    NamedUser,
    UserInfo,
)

log = structlog.get_logger()

DEFAULT_KUBECONFIG_PATH = Path("~/.kube/config")


# --- Document models ---
# These mirror the kubeconfig schema one to one. Unknown keys are ignored.


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class _ClusterDoc(_Document):
    server: str = Field(min_length=1)
    certificate_authority: str | None = Field(None, alias="certificate-authority")
    certificate_authority_data: str | None = Field(None, alias="certificate-authority-data")
    insecure_skip_tls_verify: bool = Field(False, alias="insecure-skip-tls-verify")


class _NamedClusterDoc(_Document):
    name: str = Field(min_length=1)
    cluster: _ClusterDoc


class _ContextDoc(_Document):
    cluster: str = Field(min_length=1)
    user: str = Field(min_length=1)
    namespace: str | None = None


class _NamedContextDoc(_Document):
    name: str = Field(min_length=1)
    context: _ContextDoc


class _ExecEnvDoc(_Document):
    name: str = Field(min_length=1)
    value: str


class _ExecDoc(_Document):
    api_version: str = Field("client.authentication.k8s.io/v1beta1", alias="apiVersion")
    command: str = Field(min_length=1)
    args: list[str] | None = None
    env: list[_ExecEnvDoc] | None = None
    install_hint: str | None = Field(None, alias="installHint")


class _UserDoc(_Document):
    token: str | None = None
    token_file: str | None = Field(None, alias="tokenFile")
    username: str | None = None
    password: str | None = None
    client_certificate: str | None = Field(None, alias="client-certificate")
    client_certificate_data: str | None = Field(None, alias="client-certificate-data")
    client_key: str | None = Field(None, alias="client-key")
    client_key_data: str | None = Field(None, alias="client-key-data")
    exec: _ExecDoc | None = None


class _NamedUserDoc(_Document):
    name: str = Field(min_length=1)
    # A user entry with no credential fields is written as ``user: {}`` or omitted
    user: _UserDoc = Field(default_factory=_UserDoc)


class _KubeconfigDoc(_Document):
    clusters: list[_NamedClusterDoc] | None = None
    contexts: list[_NamedContextDoc] | None = None
    users: list[_NamedUserDoc] | None = None
    current_context: str | None = Field(None, alias="current-context")


# --- Conversion to entities ---


def _error_field(error: dict[str, Any]) -> str:
    parts: list[str] = []
    for loc in error["loc"]:
        if isinstance(loc, int):
            parts.append(f"[{loc}]")
        else:
            parts.append(f".{loc}" if parts else str(loc))
    return "".join(parts) or "<document>"


def _to_cluster(index: int, doc: _NamedClusterDoc, base_path: Path | None) -> NamedCluster:
    ca = key_source_from(
        doc.cluster.certificate_authority_data,
        doc.cluster.certificate_authority,
        field=f"clusters[{index}].cluster.certificate-authority-data",
        base_path=base_path,
    )
    return NamedCluster(
        name=doc.name,
        cluster=ClusterInfo(
            server=doc.cluster.server,
            insecure_skip_tls_verify=doc.cluster.insecure_skip_tls_verify,
            certificate_authority=ca,
        ),
    )


def _to_context(doc: _NamedContextDoc) -> NamedContext:
    return NamedContext(
        name=doc.name,
        context=ContextInfo(cluster=doc.context.cluster, user=doc.context.user, namespace=doc.context.namespace),
    )


def _to_exec(doc: _ExecDoc) -> ExecConfig:
    return ExecConfig(
        api_version=doc.api_version,
        command=doc.command,
        args=tuple(doc.args or ()),
        env=frozenset(ExecEnvVar(e.name, e.value) for e in doc.env or ()),
        install_hint=doc.install_hint,
    )


def _to_token(doc: _UserDoc, field: str, base_path: Path | None) -> KeySource | None:
    if doc.token:
        return FromString(doc.token)
    return key_source_from(None, doc.token_file, field=field, base_path=base_path)


def _to_user(index: int, doc: _NamedUserDoc, base_path: Path | None) -> NamedUser:
    user = doc.user
    prefix = f"users[{index}].user"
    return NamedUser(
        name=doc.name,
        user=UserInfo(
            token=_to_token(user, f"{prefix}.tokenFile", base_path),
            username=user.username,
            password=user.password,
            client_certificate=key_source_from(
                user.client_certificate_data,
                user.client_certificate,
                field=f"{prefix}.client-certificate-data",
                base_path=base_path,
            ),
            client_key=key_source_from(
                user.client_key_data,
                user.client_key,
                field=f"{prefix}.client-key-data",
                base_path=base_path,
            ),
            exec=_to_exec(user.exec) if user.exec else None,
        ),
    )


def parse_kubeconfig(document: str, *, base_path: Path | None = None) -> Kubeconfig:
    """Parse a kubeconfig document.

    Parsing is all-or-nothing: either the whole document converts, or a
    ParseError is raised and no Kubeconfig is produced. Cross references
    between contexts, clusters and users are not checked here.

    Args:
        document: kubeconfig YAML (or JSON) text.
        base_path: Directory that relative file references are resolved against.

    Returns:
        The parsed Kubeconfig, with entries in document order.

    Raises:
        ParseError: If the text is not valid YAML, is not a mapping, or a
            required field is missing or has the wrong type.
    """
    try:
        raw = yaml.safe_load(document)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f"line {mark.line + 1}, column {mark.column + 1}" if mark else "unknown position"
        log.warning("kubeconfig_syntax_error", position=where)
        raise ParseError("<document>", f"invalid YAML at {where}") from None

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ParseError("<document>", f"expected a mapping, got {type(raw).__name__}")

    try:
        doc = _KubeconfigDoc.model_validate(raw)
    except ValidationError as e:
        first = e.errors()[0]
        field = _error_field(first)
        log.warning("kubeconfig_invalid", field=field, error_count=e.error_count())
        raise ParseError(field, first["msg"]) from None

    kubeconfig = Kubeconfig(
        clusters=tuple(_to_cluster(i, c, base_path) for i, c in enumerate(doc.clusters or ())),
        contexts=tuple(_to_context(c) for c in doc.contexts or ()),
        users=tuple(_to_user(i, u, base_path) for i, u in enumerate(doc.users or ())),
        current_context=doc.current_context or None,
    )
    log.debug(
        "kubeconfig_parsed",
        clusters=len(kubeconfig.clusters),
        contexts=len(kubeconfig.contexts),
        users=len(kubeconfig.users),
        current_context=kubeconfig.current_context,
    )
    return kubeconfig


def load_kubeconfig(path: str | Path) -> Kubeconfig:
    """Read and parse a kubeconfig file.

    Relative file references in the document are resolved against the
    file's directory.

    Raises:
        KeySourceReadError: If the file cannot be read.
        ParseError: If the content is not a valid kubeconfig.
    """
    path = Path(path).expanduser()
    try:
        document = path.read_text(encoding="utf-8")
    except OSError as e:
        log.error("kubeconfig_read_failed", path=str(path), error=type(e).__name__)
        raise KeySourceReadError(str(path), e) from e
    return parse_kubeconfig(document, base_path=path.parent)


def default_kubeconfig_path() -> Path | None:
    """Locate the kubeconfig file the way kubectl does.

    The first existing entry of ``KUBECONFIG`` wins, then ``~/.kube/config``.
    Multiple files are not merged.

    Returns:
        The path of an existing kubeconfig file, or None.
    """
    for entry in os.environ.get("KUBECONFIG", "").split(os.pathsep):
        if entry and Path(entry).expanduser().is_file():
            return Path(entry).expanduser()
    default = DEFAULT_KUBECONFIG_PATH.expanduser()
    if default.is_file():
        return default
    return None
