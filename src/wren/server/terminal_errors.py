"""Terminal error formatting for unrecovered handler failures.

Replaces a raw ``logger.exception()`` with readable diagnostics. The
traceback verbosity is controlled by the ``WREN_TRACEBACK`` environment
variable:

- ``compact`` (default): error summary plus application frames only
- ``full``: the complete Python traceback
- ``minimal``: one line with the raising location
"""

from __future__ import annotations

import logging
import os
import traceback as _traceback
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from wren.http.request import Request

logger = logging.getLogger("wren.server")

# Frames shown in compact mode
_MAX_APP_FRAMES = 5


def _is_app_frame(filename: str) -> bool:
    """True if the frame is from the application (not stdlib, site-packages, or wren)."""
    if "site-packages" in filename or filename.startswith("<"):
        return False
    if f"{os.sep}wren{os.sep}" in filename:
        return False
    stdlib_prefix = os.path.dirname(os.__file__)
    return not filename.startswith(stdlib_prefix)


def format_compact_traceback(exc: BaseException) -> str:
    """Error summary plus the last few application frames.

    Falls back to the last three frames when none belong to the app.
    """
    tb = exc.__traceback__
    frames = _traceback.extract_tb(tb) if tb else []
    app_frames = [f for f in frames if _is_app_frame(f.filename)]
    display_frames = app_frames or frames[-3:]

    parts = [f"{type(exc).__name__}: {exc}"]
    if display_frames:
        parts.append("  Trace (app frames):")
        for frame in display_frames[-_MAX_APP_FRAMES:]:
            parts.append(f"    {frame.filename}:{frame.lineno} in {frame.name}")
            if frame.line:
                parts.append(f"      {frame.line.strip()}")
    return "\n".join(parts)


def format_minimal_error(exc: BaseException) -> str:
    """One-line error summary with the innermost raising location."""
    tb = exc.__traceback__
    frames = _traceback.extract_tb(tb) if tb else []
    last = frames[-1] if frames else None
    location = f" at {last.filename}:{last.lineno}" if last else ""
    return f"{type(exc).__name__}{location}: {exc}"


def log_error(error: Any, request: Request | None = None, *, status: int = 500) -> None:
    """Report an unrecovered error to the ``wren.server`` logger.

    *error* is usually an exception, but ``next()`` accepts any value, so
    non-exceptions are logged with their ``repr``.
    """
    prefix = f"{status} {request.method} {request.path}" if request is not None else f"{status}"

    if not isinstance(error, BaseException):
        logger.error("%s - next() was called with %r", prefix, error)
        return

    style = os.environ.get("WREN_TRACEBACK", "compact").lower()
    if style == "full":
        logger.error(prefix, exc_info=error)
    elif style == "minimal":
        logger.error("%s - %s", prefix, format_minimal_error(error))
    else:
        logger.error("%s\n%s", prefix, format_compact_traceback(error))
