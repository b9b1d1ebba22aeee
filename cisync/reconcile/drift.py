"""Drift detection — compare canonical scripts by content digest."""

from __future__ import annotations

from dataclasses import dataclass

from cisync.models.script import CanonicalScript


def _digest(script: CanonicalScript) -> str:
    if not isinstance(script, CanonicalScript):
        raise TypeError(
            f"Drift detection needs a CanonicalScript, got {type(script).__name__}; "
            "normalize it first"
        )
    return script.digest()


def scripts_match(a: CanonicalScript, b: CanonicalScript) -> bool:
    """True when both canonical scripts have the same SHA-256 digest."""
    return _digest(a) == _digest(b)


def has_drift(a: CanonicalScript, b: CanonicalScript) -> bool:
    return not scripts_match(a, b)


@dataclass(frozen=True)
class ScriptPair:
    """Managed and local copies of one script, both normalized."""

    managed: CanonicalScript
    local: CanonicalScript

    @property
    def drifted(self) -> bool:
        return has_drift(self.managed, self.local)
