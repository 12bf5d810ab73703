"""
Logging setup and one-line failure reports for display writes.

Every module logs through `logging.getLogger(__name__)`, so all records land under the
"trelliskit" logger. configure_logging() attaches a stream handler there for scripts that
do not configure logging themselves; report_failure() turns an exception raised while
writing a display into the single line a user should read, keeping the traceback at DEBUG.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from trelliskit.core.errors import KeyIntegrityError, PanelResolutionError, TrelliskitError
from trelliskit.io.errors import IoError, PanelWriteError

__all__ = [
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_LOG_FORMAT",
    "configure_logging",
    "get_user_message",
    "report_failure",
]

DEFAULT_LOGGER_NAME = "trelliskit"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO, *, fmt: str = DEFAULT_LOG_FORMAT) -> logging.Logger:
    """
    Send trelliskit records to stderr at `level`.

    Calling it again only updates the level and format; no second handler is added.
    """
    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(level)
    handler = next((h for h in logger.handlers if getattr(h, "_trelliskit", False)), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler._trelliskit = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    handler.setFormatter(logging.Formatter(fmt))
    return logger


def get_user_message(exc: BaseException) -> str:
    """
    One-line message for an exception raised by trelliskit.

    Known failures are reported by category; anything else is "Unexpected error".
    """
    if isinstance(exc, ValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"]) or "value" for err in exc.errors())
        return f"Invalid panel options ({fields}): {exc.error_count()} error(s)"
    if isinstance(exc, PanelResolutionError):
        return f"Panel {exc.index} of column {exc.column!r} failed: {exc}"
    if isinstance(exc, PanelWriteError):
        return f"Could not write panel {exc.index} to {exc.path}: {exc}"
    if isinstance(exc, KeyIntegrityError):
        return f"Key integrity violation: {exc}"
    if isinstance(exc, (TrelliskitError, IoError)):
        return str(exc)
    return f"Unexpected error: {exc}"


def report_failure(logger: logging.Logger, exc: BaseException, *, what: str) -> str:
    """Log `exc` as "<what> failed: <message>" at ERROR (traceback at DEBUG); return the line."""
    line = f"{what} failed: {get_user_message(exc)}"
    logger.error(line)
    logger.debug("traceback for %s", what, exc_info=exc)
    return line
