"""Normalizer — reduce script text to a canonical form for comparison."""

from __future__ import annotations

from typing import Iterable

from cisync.models.script import CanonicalScript, RawScript

# Banner Configuration Manager leaves in signed scripts. Everything from it on
# is signature data, not script content.
DEFAULT_SIGNATURE_MARKER = "# SIG # Begin signature block"

LINE_SEPARATOR = "\n"


def normalize_lines(lines: Iterable[str], marker: str | None = None) -> list[str]:
    """Truncate at the first banner line, strip lines and drop empty ones."""
    kept = []
    for line in lines:
        if marker and marker in line:
            break
        stripped = line.strip()
        if stripped:
            kept.append(stripped)
    return kept


def normalize(raw: RawScript | None, marker: str | None = DEFAULT_SIGNATURE_MARKER) -> CanonicalScript:
    """Canonical form of ``raw``; an absent script normalizes to empty."""
    if raw is None:
        return CanonicalScript("")
    return CanonicalScript(LINE_SEPARATOR.join(normalize_lines(raw.lines(), marker)))
