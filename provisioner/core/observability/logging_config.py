"""
Logging configuration — console plus an optional provisioning run log.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Console level precedence:
    CLI flag  >  MASMIDE_LOG_LEVEL env var  >  WARNING (default)

Raw output of the commands the pipeline runs (package managers, git,
make, cargo, tar) goes to the ``provisioner.commands`` logger. It never
reaches the console below DEBUG; the run log (MASMIDE_LOG_FILE) keeps
it, so a failed ``apt-get`` can be read after the terminal scrolls away.
"""

from __future__ import annotations

import logging
import sys

from provisioner import __version__

COMMAND_LOGGER = "provisioner.commands"

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(message)s", None)

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s  %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# The run log records every stage even when the console is quiet.
_FILE_DEFAULT_LEVEL = logging.INFO


class _HideCommandOutput(logging.Filter):
    """Drop ``provisioner.commands`` records from a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not record.name.startswith(COMMAND_LOGGER)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Configure logging for a masmide-provision process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional run log path. Receives stage progress and
            raw command output.
        log_file_level: Level for the run log. Defaults to INFO.
    """
    console_level = _parse_level(level)

    fmt, datefmt = _CONSOLE_DEFAULT
    for threshold in sorted(_CONSOLE_FORMATS):
        if console_level <= threshold:
            fmt, datefmt = _CONSOLE_FORMATS[threshold]
            break

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    if console_level > logging.DEBUG:
        console.addFilter(_HideCommandOutput())

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)
    effective_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else _FILE_DEFAULT_LEVEL
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)
    logging.raiseExceptions = False

    if log_file:
        logging.getLogger(__name__).info(
            "masmide-provision %s: run log opened (%s)", __version__, " ".join(sys.argv[1:]),
        )


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
