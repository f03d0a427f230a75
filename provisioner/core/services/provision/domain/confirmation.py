"""
L1 Domain — Confirmation checkpoints.

Separates the confirmation *policy* (which checkpoints exist, what an
empty answer means) from the *mechanism* (how an answer is obtained).
The pipeline only ever talks to a ``Confirmer``; the CLI supplies an
interactive one, tests supply preset answers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import click


@dataclass(frozen=True)
class Checkpoint:
    """A point where the pipeline asks the user before acting."""

    key: str
    prompt: str
    default: bool


PROCEED_INSTALL = Checkpoint(
    "proceed-install", "Proceed with installation?", default=True,
)
PROCEED_UNINSTALL = Checkpoint(
    "proceed-uninstall", "Proceed with uninstallation?", default=False,
)
REMOVE_BUNDLED_ASSEMBLER = Checkpoint(
    "remove-bundled-assembler", "Also remove the bundled JWasm assembler?", default=False,
)
REMOVE_USER_CONFIG = Checkpoint(
    "remove-user-config", "Remove user configuration?", default=False,
)


class Confirmer(Protocol):
    def confirm(self, checkpoint: Checkpoint, detail: str = "") -> bool: ...


class InteractiveConfirmer:
    """Asks on the terminal. Empty input takes the checkpoint default."""

    def confirm(self, checkpoint: Checkpoint, detail: str = "") -> bool:
        if detail:
            click.echo(detail)
        return click.confirm(checkpoint.prompt, default=checkpoint.default)


class PresetConfirmer:
    """Answers from a fixed mapping; unanswered checkpoints take their default.

    Every checkpoint consulted is recorded in ``asked`` so callers can
    assert how many prompts a run produced.
    """

    def __init__(self, answers: dict[str, bool] | None = None):
        self.answers = dict(answers or {})
        self.asked: list[str] = []

    def confirm(self, checkpoint: Checkpoint, detail: str = "") -> bool:
        self.asked.append(checkpoint.key)
        return self.answers.get(checkpoint.key, checkpoint.default)
