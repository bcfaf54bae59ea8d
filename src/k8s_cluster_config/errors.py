"""Error taxonomy for cluster configuration resolution.

Every failure is raised where it is detected and propagates upward unchanged.
Messages carry names, paths and field locations only; secret values never
appear in an error message.
"""

from __future__ import annotations


class ClusterConfigError(Exception):
    """Base class for all cluster configuration errors."""


class ParseError(ClusterConfigError, ValueError):
    """A document could not be decoded, or a required field is missing."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid value at {field!r}: {reason}")


class InvalidURI(ClusterConfigError, ValueError):
    """A server address is not a valid http(s) URI."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(f"Invalid server URI: {raw!r}")


class NotFound(ClusterConfigError, LookupError):
    """A named entry (context, cluster, user or authentication) does not exist."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"No {kind} found for {name!r}")


class AmbiguousConfig(ClusterConfigError, ValueError):
    """More than one mutually exclusive alternative is populated."""

    def __init__(self, field: str, alternatives: tuple[str, ...] = ()) -> None:
        self.field = field
        self.alternatives = alternatives
        detail = f" (found: {', '.join(alternatives)})" if alternatives else ""
        super().__init__(f"Ambiguous configuration at {field!r}: only one alternative may be set{detail}")


class MissingConfig(ClusterConfigError, ValueError):
    """None of the required alternatives is populated."""

    def __init__(self, field: str, alternatives: tuple[str, ...] = ()) -> None:
        self.field = field
        self.alternatives = alternatives
        detail = f" (expected one of: {', '.join(alternatives)})" if alternatives else ""
        super().__init__(f"Missing configuration at {field!r}{detail}")


class KeySourceReadError(ClusterConfigError, OSError):
    """A file-backed secret or document could not be read."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to read {path}: {cause.strerror or type(cause).__name__}")


class ExecutionFailed(ClusterConfigError, RuntimeError):
    """The exec credential plugin could not be run to completion."""

    def __init__(
        self,
        command: str,
        *,
        exit_code: int | None = None,
        timed_out: bool = False,
        stderr: str = "",
        detail: str | None = None,
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.timed_out = timed_out
        self.stderr = stderr
        if detail is not None:
            msg = f"Exec plugin {command!r} failed: {detail}"
        elif timed_out:
            msg = f"Exec plugin {command!r} timed out"
        else:
            msg = f"Exec plugin {command!r} exited with code {exit_code}"
        super().__init__(msg)


class ExecCredentialError(ClusterConfigError, ValueError):
    """The exec credential plugin produced an unusable ExecCredential payload."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Invalid ExecCredential output: {reason}")
