"""Locating files next to the code that asks for them."""

from __future__ import annotations

import inspect
from pathlib import Path


def caller_dir(stacktrace_step: int) -> Path:
    """Return the directory of the source file ``stacktrace_step`` frames up.

    Step 0 is this function itself, step 1 its caller, and so on.
    Raises LookupError if the stack is not that deep.
    """
    frame = inspect.currentframe()
    try:
        for _ in range(stacktrace_step):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            raise LookupError("could not retrieve current dir")
        return Path(frame.f_code.co_filename).resolve().parent
    finally:
        del frame


def read_relative_file(relative_path: str | Path) -> bytes:
    """Read a file given relative to the directory of the calling module."""
    return (caller_dir(2) / relative_path).read_bytes()