"""
Logging configuration — one call from the CLI entrypoint.

Modules log through ``logging.getLogger(__name__)``; this module only
wires the root logger.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  CARP_LOG_LEVEL  >  WARNING

CARP_LOG_FILE adds a file handler (level CARP_LOG_FILE_LEVEL, else the
console level).  The node and RPC bridge are not logged through here:
they write straight to the inherited terminal.
"""

from __future__ import annotations

import logging
import os
import sys

# Console format by threshold: the first entry whose level is >= the
# configured level wins.
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
)
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with carp's.

    Args:
        level: Console level name.  Unknown names mean WARNING.
        log_file: Optional path for a full-detail log file.
        log_file_level: Level for the file.  Defaults to ``level``.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    handlers: list[logging.Handler] = [console]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(_parse_level(log_file_level) if log_file_level else console_level)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(min(h.level for h in handlers))

    # Output after the CLI runner closes stderr must not raise.
    logging.raiseExceptions = False


def resolve_level(*, debug: bool = False, verbose: bool = False, quiet: bool = False) -> str:
    """Pick the console level from CLI flags, then CARP_LOG_LEVEL."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get("CARP_LOG_LEVEL", "WARNING")


def setup_from_env(level: str) -> None:
    """``setup_logging`` with the CARP_LOG_FILE / CARP_LOG_FILE_LEVEL overrides."""
    setup_logging(
        level=level,
        log_file=os.environ.get("CARP_LOG_FILE"),
        log_file_level=os.environ.get("CARP_LOG_FILE_LEVEL"),
    )


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold, fmt, datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            return fmt, datefmt
    return _CONSOLE_DEFAULT


def _parse_level(level: str | None) -> int:
    numeric = logging.getLevelName(level.upper()) if level else logging.WARNING
    return numeric if isinstance(numeric, int) else logging.WARNING
