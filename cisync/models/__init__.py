"""Data models shared by the extractor, writer and orchestrator."""

from cisync.models.item import Action, ConfigurationItem, ReconciliationResult
from cisync.models.script import CanonicalScript, RawScript, ScriptKind

__all__ = [
    "Action",
    "CanonicalScript",
    "ConfigurationItem",
    "RawScript",
    "ReconciliationResult",
    "ScriptKind",
]
