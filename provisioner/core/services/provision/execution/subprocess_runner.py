"""
L4 Execution — Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for
provisioning operations. Elevation, logging, and error handling
are centralised here.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from typing import Any

from provisioner.core.observability.logging_config import COMMAND_LOGGER

logger = logging.getLogger(__name__)
output_log = logging.getLogger(COMMAND_LOGGER)

_OUTPUT_TAIL = 4000


def _tail(text: str | None) -> str:
    return text[-_OUTPUT_TAIL:] if text else ""


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    token: Any = None,
    timeout: float | None = None,
    cwd: str | None = None,
    env_overrides: dict[str, str] | None = None,
    capture: bool = True,
) -> dict[str, Any]:
    """Run a command and report the outcome. Never raises.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Whether the command requires root.
        token: PrivilegeToken from the broker; wraps ``cmd`` with
            non-interactive sudo when the process is not root.
        timeout: Seconds before the command is killed. None = no limit.
        cwd: Working directory for the command.
        env_overrides: Extra env vars for the child.
        capture: Capture stdout/stderr. False lets the child use the
            terminal (needed for the sudo password prompt).

    Returns:
        ``{"ok": True, "returncode": 0, "stdout": ..., "stderr": ..., "elapsed_ms": N}``
        on success, ``{"ok": False, "error": "...", ...}`` on failure.
        ``timed_out`` is set when the timeout fired.
    """
    # ── Elevation ──
    if needs_sudo:
        if token is not None:
            cmd = token.wrap(cmd)
        elif os.geteuid() != 0:
            return {
                "ok": False,
                "returncode": None,
                "error": "This step requires elevated privilege, but none was acquired.",
                "stdout": "",
                "stderr": "",
                "timed_out": False,
            }

    # ── Environment ──
    env = None
    if env_overrides:
        env = os.environ.copy()
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    # ── Execute ──
    logger.debug("run: %s (cwd=%s)", cmd, cwd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired as e:
        logger.info("Timed out after %ss: %s", timeout, cmd)
        _log_output(cmd, "timed out", e.stdout, e.stderr)
        return {
            "ok": False,
            "returncode": None,
            "error": f"Command timed out ({timeout}s)",
            "stdout": _tail(e.stdout if isinstance(e.stdout, str) else None),
            "stderr": _tail(e.stderr if isinstance(e.stderr, str) else None),
            "timed_out": True,
        }
    except OSError as e:
        logger.debug("Cannot execute %s: %s", cmd, e)
        return {
            "ok": False,
            "returncode": None,
            "error": f"Cannot execute {cmd[0]}: {e}",
            "stdout": "",
            "stderr": "",
            "timed_out": False,
        }

    elapsed_ms = int((time.monotonic() - start) * 1000)
    out = {
        "ok": result.returncode == 0,
        "returncode": result.returncode,
        "stdout": _tail(result.stdout),
        "stderr": _tail(result.stderr),
        "elapsed_ms": elapsed_ms,
        "timed_out": False,
    }
    if result.returncode != 0:
        out["error"] = f"Command failed (exit {result.returncode})"
        logger.debug("exit %d: %s", result.returncode, cmd)
    _log_output(cmd, f"exit {result.returncode}", result.stdout, result.stderr)
    return out


def _log_output(cmd: list[str], status: str, stdout: Any, stderr: Any) -> None:
    """Send a command's captured output to the run log."""
    text = "\n".join(
        _tail(s).rstrip() for s in (stdout, stderr) if isinstance(s, str) and s.strip()
    )
    if text:
        output_log.info("$ %s  [%s]\n%s", shlex.join(cmd), status, text)
    else:
        output_log.info("$ %s  [%s]", shlex.join(cmd), status)


def command_output(result: dict[str, Any]) -> str:
    """Combined raw output of a runner result, for warnings and errors."""
    parts = [result.get("stdout", ""), result.get("stderr", "")]
    text = "\n".join(p.strip() for p in parts if p and p.strip())
    return text or result.get("error", "")
