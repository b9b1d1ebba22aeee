"""Script text models.

Two distinct types keep raw and canonical text apart:

- ``RawScript`` is text exactly as read from disk or from a package document.
  It is what gets written back to a package.
- ``CanonicalScript`` is the output of the normalizer. Only canonical scripts
  can be digested or compared for drift.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum


class ScriptKind(Enum):
    """Which embedded script a value refers to."""

    DISCOVERY = "discovery"
    REMEDIATION = "remediation"

    @property
    def body_element(self) -> str:
        """Local name of the package element holding this script's body."""
        if self is ScriptKind.DISCOVERY:
            return "DiscoveryScriptBody"
        return "RemediationScriptBody"

    @property
    def file_name(self) -> str:
        """Name of the file holding this script in the scripts tree."""
        if self is ScriptKind.DISCOVERY:
            return "DiscoveryScript"
        return "RemediationScript"


@dataclass(frozen=True)
class RawScript:
    """Script text as found, before normalization."""

    text: str

    def lines(self) -> list[str]:
        return self.text.splitlines()


@dataclass(frozen=True)
class CanonicalScript:
    """Normalized script text, safe to digest."""

    text: str = ""

    @property
    def is_empty(self) -> bool:
        return self.text == ""

    def digest(self) -> str:
        """SHA-256 hex digest of the UTF-8 encoded text."""
        return hashlib.sha256(self.text.encode("utf-8")).hexdigest()
