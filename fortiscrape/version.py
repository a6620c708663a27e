"""FortiOS version strings and per-target metadata."""

from __future__ import annotations

import re
from dataclasses import dataclass

_VERSION_RE = re.compile(r"v([+-]?\d+)\.([+-]?\d+)\.")


@dataclass(frozen=True)
class TargetMetadata:
    """What is known about a probed device before its probes run."""

    version_major: int = 0
    version_minor: int = 0


def parse_version(ver: str) -> tuple[int, int]:
    """Return (major, minor) of a version such as ``v6.4.4``.

    Raises ValueError if the string does not start with ``v<major>.<minor>.``.
    """
    match = _VERSION_RE.match(ver)
    if match is None:
        raise ValueError(f"could not parse version number {ver!r}")
    return int(match.group(1)), int(match.group(2))