"""Exec credential plugin invocation (``client.authentication.k8s.io`` ExecCredential)."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from typing import Protocol

import structlog

from k8s_cluster_config.errors import ExecCredentialError, ExecutionFailed
from k8s_cluster_config.models import ExecConfig

log = structlog.get_logger()

EXEC_INFO_ENV = "KUBERNETES_EXEC_INFO"


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of one plugin run. ``stdout`` may be raw bytes; it is decoded as UTF-8 when parsed."""

    exit_code: int
    stdout: str | bytes
    stderr: str


class ProcessRunner(Protocol):
    """Runs a command to completion and reports its outcome.

    Implementations raise ``subprocess.TimeoutExpired`` when ``timeout``
    elapses and ``FileNotFoundError`` when the executable does not exist.
    """

    def __call__(self, argv: list[str], env: dict[str, str], timeout: float) -> ProcessResult: ...


def subprocess_runner(argv: list[str], env: dict[str, str], timeout: float) -> ProcessResult:
    """Run ``argv`` with ``subprocess.run``.

    stdout is returned as bytes. stderr is only diagnostic, so undecodable
    bytes in it are replaced.
    """
    completed = subprocess.run(
        argv,
        env=env,
        timeout=timeout,
        capture_output=True,
        stdin=subprocess.DEVNULL,
        check=False,
    )
    return ProcessResult(
        exit_code=completed.returncode,
        stdout=completed.stdout,
        stderr=completed.stderr.decode("utf-8", errors="replace"),
    )


def _exec_info(config: ExecConfig) -> str:
    return json.dumps(
        {
            "apiVersion": config.api_version,
            "kind": "ExecCredential",
            "spec": {"interactive": False},
        }
    )


def _child_env(config: ExecConfig) -> dict[str, str]:
    env = dict(os.environ)
    # Sorted so that a name listed twice resolves the same way on every call
    for var in sorted(config.env, key=lambda v: (v.name, v.value)):
        env[var.name] = var.value
    env[EXEC_INFO_ENV] = _exec_info(config)
    return env


def _extract_token(stdout: str | bytes) -> str:
    if isinstance(stdout, bytes):
        try:
            stdout = stdout.decode("utf-8")
        except UnicodeDecodeError:
            raise ExecCredentialError("output is not valid UTF-8") from None
    try:
        payload = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ExecCredentialError(f"output is not valid JSON ({e.msg} at line {e.lineno})") from None

    if not isinstance(payload, dict):
        raise ExecCredentialError(f"expected a JSON object, got {type(payload).__name__}")
    kind = payload.get("kind")
    if kind != "ExecCredential":
        raise ExecCredentialError(f"expected kind 'ExecCredential', got {kind!r}")
    status = payload.get("status")
    if not isinstance(status, dict):
        raise ExecCredentialError("missing 'status' object")
    token = status.get("token")
    if not isinstance(token, str) or not token:
        raise ExecCredentialError("missing or empty 'status.token'")
    return token


def run_exec_credential(
    config: ExecConfig,
    timeout: float,
    *,
    runner: ProcessRunner = subprocess_runner,
) -> str:
    """Run an exec credential plugin once and return the bearer token it prints.

    The plugin inherits the current environment, extended by the configured
    ``env`` pairs and ``KUBERNETES_EXEC_INFO``. It is never retried: plugins
    may prompt or hit rate-limited endpoints, so retry policy belongs to the
    caller.

    Args:
        config: The plugin command line.
        timeout: Hard bound in seconds on the plugin's run time.
        runner: Process capability, replaceable in tests.

    Returns:
        The ``status.token`` of the ExecCredential printed on stdout.

    Raises:
        ExecutionFailed: If the plugin cannot be started, times out, or exits non-zero.
        ExecCredentialError: If stdout is not a valid ExecCredential with a token.
    """
    argv = [config.command, *config.args]
    try:
        result = runner(argv, _child_env(config), timeout)
    except subprocess.TimeoutExpired:
        log.error("exec_plugin_timed_out", command=config.command, timeout_seconds=timeout)
        raise ExecutionFailed(config.command, timed_out=True) from None
    except FileNotFoundError:
        log.error("exec_plugin_not_found", command=config.command)
        detail = "executable not found"
        if config.install_hint:
            detail = f"{detail}. {config.install_hint.strip()}"
        raise ExecutionFailed(config.command, detail=detail) from None
    except PermissionError:
        log.error("exec_plugin_not_executable", command=config.command)
        raise ExecutionFailed(config.command, detail="permission denied") from None
    except OSError as e:
        log.error("exec_plugin_start_failed", command=config.command, error=type(e).__name__, errno=e.errno)
        raise ExecutionFailed(config.command, detail=e.strerror or type(e).__name__) from None
    except ValueError:
        # subprocess rejects env names containing '=' and arguments containing NUL
        log.error("exec_plugin_invalid_invocation", command=config.command)
        raise ExecutionFailed(config.command, detail="invalid command line or environment") from None

    if result.exit_code != 0:
        log.error("exec_plugin_failed", command=config.command, exit_code=result.exit_code)
        raise ExecutionFailed(config.command, exit_code=result.exit_code, stderr=result.stderr)

    try:
        token = _extract_token(result.stdout)
    except ExecCredentialError as e:
        log.error("exec_plugin_invalid_output", command=config.command, reason=e.reason)
        raise
    log.debug("exec_plugin_succeeded", command=config.command)
    return token
