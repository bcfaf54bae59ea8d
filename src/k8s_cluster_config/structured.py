"""Decoding of a hierarchical application configuration into a ClusterConfig.

Expected shape (YAML shown, any nested mapping works)::

    host: https://kubernetes.default.svc
    authentication:
      serviceAccountToken:
        path: /var/run/secrets/kubernetes.io/serviceaccount/token
    client:
      debug: false
      secure:
        certificate:
          path: /var/run/secrets/kubernetes.io/serviceaccount/ca.crt
        disableHostnameVerification: false

Each sum type is written as a set of mutually exclusive sub-keys. Exactly one
must be populated.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from k8s_cluster_config.config import MissingCaPolicy, Settings, get_settings
from k8s_cluster_config.errors import AmbiguousConfig, KeySourceReadError, MissingConfig, ParseError
from k8s_cluster_config.key_source import FromFile, FromString, KeySource
from k8s_cluster_config.models import (
    Authentication,
    BasicAuth,
    ClientCertificates,
    ClientConfig,
    ClusterConfig,
    Insecure,
    Secure,
    ServerCertificate,
    ServiceAccountToken,
)
from k8s_cluster_config.resolver import parse_host

log = structlog.get_logger()

_AUTHENTICATION_KEYS = ("serviceAccountToken", "basicAuth", "clientCertificates")
_SERVER_CERTIFICATE_KEYS = ("secure", "insecure")
_KEY_SOURCE_KEYS = ("path", "value")


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _populated(node: Mapping[str, Any], key: str) -> bool:
    value = node.get(key)
    # ``insecure: false`` does not select the insecure alternative
    return value is not None and value is not False


def _one_of(node: Mapping[str, Any], keys: tuple[str, ...], field: str) -> str:
    present = tuple(k for k in keys if _populated(node, k))
    if len(present) > 1:
        raise AmbiguousConfig(field, present)
    if not present:
        raise MissingConfig(field, keys)
    return present[0]


def _mapping(value: Any, field: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ParseError(field, f"expected a mapping, got {type(value).__name__}")
    return value


def _string(node: Mapping[str, Any], key: str, field: str) -> str:
    value = node.get(key)
    if value is None:
        raise MissingConfig(_join(field, key))
    if not isinstance(value, str) or not value:
        raise ParseError(_join(field, key), "expected a non-empty string")
    return value


def _bool(node: Mapping[str, Any], key: str, field: str, default: bool = False) -> bool:
    value = node.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ParseError(_join(field, key), f"expected a boolean, got {type(value).__name__}")
    return value


def _key_source(value: Any, field: str) -> KeySource:
    node = _mapping(value, field)
    kind = _one_of(node, _KEY_SOURCE_KEYS, field)
    if kind == "path":
        return FromFile(Path(_string(node, "path", field)))
    return FromString(_string(node, "value", field))


def _authentication(value: Any) -> Authentication:
    field = "authentication"
    node = _mapping(value, field)
    kind = _one_of(node, _AUTHENTICATION_KEYS, field)
    sub_field = _join(field, kind)
    sub = _mapping(node[kind], sub_field)
    if kind == "serviceAccountToken":
        return ServiceAccountToken(_key_source(sub, sub_field))
    if kind == "basicAuth":
        return BasicAuth(username=_string(sub, "username", sub_field), password=_string(sub, "password", sub_field))
    for key in ("certificate", "key"):
        if sub.get(key) is None:
            raise MissingConfig(_join(sub_field, key))
    return ClientCertificates(
        certificate=_key_source(sub["certificate"], _join(sub_field, "certificate")),
        key=_key_source(sub["key"], _join(sub_field, "key")),
    )


def _server_certificate(node: Mapping[str, Any], missing_ca: MissingCaPolicy) -> ServerCertificate:
    field = "client"
    kind = _one_of(node, _SERVER_CERTIFICATE_KEYS, field)
    if kind == "insecure":
        if node["insecure"] is not True:
            raise ParseError("client.insecure", "expected a boolean")
        return Insecure()

    secure_field = "client.secure"
    secure = _mapping(node["secure"], secure_field)
    certificate = None
    if secure.get("certificate") is not None:
        certificate = _key_source(secure["certificate"], _join(secure_field, "certificate"))
    elif missing_ca is MissingCaPolicy.ERROR:
        raise MissingConfig(_join(secure_field, "certificate"))
    return Secure(
        disable_hostname_verification=_bool(secure, "disableHostnameVerification", secure_field),
        certificate=certificate,
    )


def decode_cluster_config(config: Mapping[str, Any], *, settings: Settings | None = None) -> ClusterConfig:
    """Decode a structured configuration mapping into a ClusterConfig.

    Args:
        config: Mapping with ``host``, ``authentication`` and ``client`` keys.
        settings: Resolution policies. Defaults to ``get_settings()``.

    Returns:
        The decoded ClusterConfig. No files are read.

    Raises:
        AmbiguousConfig: If more than one alternative of a sum type is set.
        MissingConfig: If a required key or every alternative of a sum type is absent.
        ParseError: If a value has the wrong type.
        InvalidURI: If ``host`` is malformed.
    """
    settings = settings or get_settings()
    node = _mapping(config, "<root>")
    host = parse_host(_string(node, "host", ""))

    if node.get("authentication") is None:
        raise MissingConfig("authentication", _AUTHENTICATION_KEYS)
    authentication = _authentication(node["authentication"])

    client = _mapping(node.get("client") or {}, "client")
    result = ClusterConfig(
        host=host,
        authentication=authentication,
        client=ClientConfig(
            debug=_bool(client, "debug", "client"),
            server_certificate=_server_certificate(client, settings.missing_ca),
        ),
    )
    log.debug("structured_config_decoded", authentication=type(authentication).__name__)
    return result


def parse_structured_config(
    text: str,
    *,
    root: str | None = None,
    settings: Settings | None = None,
) -> ClusterConfig:
    """Decode a YAML document, optionally nested under ``root`` (e.g. ``k8s``).

    Raises:
        ParseError: If the text is not valid YAML or ``root`` is absent.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError:
        raise ParseError("<document>", "invalid YAML") from None
    node = _mapping(raw, "<document>")
    if root is not None:
        if node.get(root) is None:
            raise ParseError(root, "missing configuration section")
        node = _mapping(node[root], root)
    return decode_cluster_config(node, settings=settings)


def load_structured_config(
    path: str | Path,
    *,
    root: str | None = None,
    settings: Settings | None = None,
) -> ClusterConfig:
    """Read a YAML configuration file and decode it.

    Raises:
        KeySourceReadError: If the file cannot be read.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log.error("structured_config_read_failed", path=str(path), error=type(e).__name__)
        raise KeySourceReadError(str(path), e) from e
    return parse_structured_config(text, root=root, settings=settings)
