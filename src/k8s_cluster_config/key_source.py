"""Lazy references to secret material: a file path or an inline literal."""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from k8s_cluster_config.errors import KeySourceReadError, ParseError

log = structlog.get_logger()


@dataclass(frozen=True)
class FromFile:
    """Secret stored in a file. The file is read again on every resolution."""

    path: Path

    def resolve(self) -> bytes:
        """Read the file content.

        Raises:
            KeySourceReadError: If the file cannot be read.
        """
        try:
            return self.path.read_bytes()
        except OSError as e:
            log.warning("key_source_read_failed", path=str(self.path), error=type(e).__name__)
            raise KeySourceReadError(str(self.path), e) from e

    def resolve_text(self) -> str:
        """Read the file as UTF-8 text.

        Raises:
            KeySourceReadError: If the file cannot be read.
            ParseError: If the content is not UTF-8.
        """
        return _decode(self.resolve(), str(self.path))


@dataclass(frozen=True)
class FromString:
    """Secret held inline. The value is excluded from ``repr``."""

    value: str | bytes = field(repr=False)

    def resolve(self) -> bytes:
        if isinstance(self.value, bytes):
            return self.value
        return self.value.encode("utf-8")

    def resolve_text(self) -> str:
        return _decode(self.resolve(), "<inline>")


KeySource = FromFile | FromString


def _decode(content: bytes, location: str) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        raise ParseError(location, "not valid UTF-8 text") from None


def key_source_from(
    data: str | None,
    path: str | None,
    *,
    field: str,
    base_path: Path | None = None,
) -> KeySource | None:
    """Collapse a kubeconfig ``*-data`` / path pair into one KeySource.

    Inline base64 data takes precedence over the path. A relative path is
    resolved against ``base_path`` when one is given.

    Args:
        data: Base64-encoded inline content, if any.
        path: Path to a file holding the content, if any.
        field: Dotted location of ``data`` in the source document, used in errors.
        base_path: Directory relative paths are resolved against.

    Returns:
        ``FromString`` with the decoded data, ``FromFile`` for the path, or
        None when neither is present.

    Raises:
        ParseError: If ``data`` is not valid base64.
    """
    if data:
        try:
            # Block scalars wrap long data across lines
            return FromString(base64.b64decode("".join(data.split()), validate=True))
        except (binascii.Error, ValueError):
            raise ParseError(field, "not valid base64") from None
    if path:
        return FromFile(_resolve_path(path, base_path))
    return None


def _resolve_path(path: str, base_path: Path | None) -> Path:
    resolved = Path(path).expanduser()
    if base_path is not None and not resolved.is_absolute():
        resolved = base_path / resolved
    return resolved
