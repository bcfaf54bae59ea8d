"""Library settings and resolution policies, with environment variable overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum


class DuplicateNamePolicy(str, Enum):
    """How kubeconfig lookups treat several entries sharing one name."""

    FIRST = "first"
    ERROR = "error"


class MissingCaPolicy(str, Enum):
    """How a secure server certificate without a certificate authority is treated."""

    # Defer to the platform trust store
    SYSTEM = "system"
    ERROR = "error"


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    valid = ", ".join(sorted((_TRUE_VALUES | _FALSE_VALUES) - {""}))
    msg = f"Invalid boolean for {name}: {raw!r}. Must be one of: {valid}"
    raise ValueError(msg)


def _env_enum(name: str, enum_cls: type[Enum], default: Enum) -> Enum:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return enum_cls(raw.strip().lower())
    except ValueError:
        valid = ", ".join(sorted(m.value for m in enum_cls))
        msg = f"Invalid value for {name}: {raw!r}. Must be one of: {valid}"
        raise ValueError(msg) from None


def _env_timeout(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        msg = f"Invalid timeout for {name}: {raw!r}. Must be a number of seconds."
        raise ValueError(msg) from None
    if value <= 0:
        msg = f"Invalid timeout for {name}: {raw!r}. Must be greater than zero."
        raise ValueError(msg)
    return value


@dataclass(frozen=True)
class Settings:
    """Resolution settings with environment variable overrides."""

    exec_timeout_seconds: float = field(default_factory=lambda: _env_timeout("K8S_EXEC_TIMEOUT_SECONDS", 30.0))
    duplicate_names: DuplicateNamePolicy = field(
        default_factory=lambda: _env_enum("K8S_DUPLICATE_NAME_POLICY", DuplicateNamePolicy, DuplicateNamePolicy.FIRST)
    )
    missing_ca: MissingCaPolicy = field(
        default_factory=lambda: _env_enum("K8S_MISSING_CA_POLICY", MissingCaPolicy, MissingCaPolicy.SYSTEM)
    )
    debug: bool = field(default_factory=lambda: _env_bool("K8S_CLIENT_DEBUG", False))


def get_settings() -> Settings:
    """Return settings with environment variable overrides applied."""
    return Settings()
