"""
L4 Execution — Privilege broker.

Acquires elevated rights once per run and keeps the sudo timestamp
alive with a background heartbeat until ``release``. The heartbeat is
an owned handle on the token (no module-level flag): ``release`` stops
and joins it, and is safe to call any number of times.

Design decisions
────────────────
1. **One prompt**: ``sudo -v`` runs interactively once; every later
   elevated command uses ``sudo -n`` and fails fast instead of
   re-prompting.
2. **Daemon thread**: the heartbeat dies with the process even if a
   caller forgets ``release``.
3. **Root is a no-op**: running as root yields a token with no
   heartbeat and no command wrapping.
"""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from provisioner.core.errors import PrivilegeError
from provisioner.core.services.provision.execution.subprocess_runner import (
    command_output,
    run_command,
)

logger = logging.getLogger(__name__)

RENEWAL_INTERVAL_S = 50.0
"""Seconds between heartbeats. sudo's default timestamp lasts 5 minutes."""


class PrivilegeToken:
    """Proof of elevation held for the rest of the run."""

    def __init__(self, mode: str):
        self.mode = mode          # "root" or "sudo"
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def heartbeat_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def released(self) -> bool:
        return self._stop.is_set()

    def wrap(self, cmd: list[str]) -> list[str]:
        """Prefix ``cmd`` for elevated execution without prompting."""
        if self.mode == "sudo":
            return ["sudo", "-n", *cmd]
        return list(cmd)


class PrivilegeBroker:
    """Hands out the run's single PrivilegeToken."""

    def __init__(
        self,
        renewal_interval: float = RENEWAL_INTERVAL_S,
        runner: Callable[..., dict[str, Any]] = run_command,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        self.renewal_interval = renewal_interval
        self._runner = runner
        self._geteuid = geteuid
        self._token: PrivilegeToken | None = None

    @property
    def token(self) -> PrivilegeToken | None:
        return self._token

    def acquire(self) -> PrivilegeToken:
        """Elevate once; later calls return the same token.

        Raises:
            PrivilegeError: If sudo is unavailable or authentication fails.
        """
        if self._token is not None and not self._token.released:
            return self._token

        if self._geteuid() == 0:
            logger.info("Running as root — no elevation needed")
            self._token = PrivilegeToken("root")
            return self._token

        logger.info("Requesting sudo credentials")
        result = self._runner(["sudo", "-v"], capture=False)
        if not result.get("ok"):
            raise PrivilegeError(
                "Could not acquire sudo privileges: "
                + (command_output(result) or "authentication failed")
            )

        token = PrivilegeToken("sudo")
        token._thread = threading.Thread(
            target=self._heartbeat,
            args=(token._stop,),
            daemon=True,
            name="sudo-heartbeat",
        )
        token._thread.start()
        logger.info("Sudo heartbeat started (renew every %.0fs)", self.renewal_interval)
        self._token = token
        return token

    def release(self, token: PrivilegeToken | None = None) -> None:
        """Stop the heartbeat. Idempotent."""
        token = token or self._token
        if token is None:
            return
        token._stop.set()
        if token.heartbeat_alive:
            token._thread.join(timeout=self.renewal_interval + 5)
            logger.debug("Sudo heartbeat stopped")

    @contextmanager
    def session(self) -> Iterator[PrivilegeToken]:
        """Acquire for the duration of a ``with`` block."""
        token = self.acquire()
        try:
            yield token
        finally:
            self.release(token)

    def _heartbeat(self, stop: threading.Event) -> None:
        while not stop.wait(self.renewal_interval):
            result = self._runner(["sudo", "-n", "true"], timeout=10)
            if not result.get("ok"):
                logger.warning("Sudo heartbeat failed: %s", result.get("error", ""))
