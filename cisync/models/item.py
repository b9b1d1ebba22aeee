"""Configuration item handle and per-item reconciliation outcome."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# CIType_ID of a plain configuration item in Configuration Manager.
CONFIGURATION_ITEM_TYPE = 3


@dataclass(frozen=True)
class ConfigurationItem:
    """One managed configuration item as returned by the management service.

    The core never mutates an item; the package writer returns a copy with a
    new document and revision.
    """

    name: str
    package_document: str
    revision_id: int = 1
    ci_id: int = 0
    ci_unique_id: str = ""
    ci_type_id: int = CONFIGURATION_ITEM_TYPE
    is_hidden: bool = False
    is_expired: bool = False


class Action(Enum):
    """Terminal outcome of one item's reconciliation."""

    NO_OP = "NoOp"
    WRITTEN = "Written"
    LOGGED_ONLY = "LoggedOnly"
    FAILED = "Failed"


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome for a single item in a single run."""

    item_name: str
    discovery_drift: bool = False
    remediation_drift: bool = False
    action: Action = Action.NO_OP
    error: str | None = None  # error kind, e.g. "ItemNotFound"
    detail: str = ""

    @property
    def has_drift(self) -> bool:
        return self.discovery_drift or self.remediation_drift

    @property
    def failed(self) -> bool:
        return self.action is Action.FAILED

    def summary(self) -> str:
        if self.failed:
            return f"{self.item_name}: FAILED [{self.error}] {self.detail}".rstrip()
        if not self.has_drift:
            return f"{self.item_name}: no drift detected"
        kinds = []
        if self.discovery_drift:
            kinds.append("discovery")
        if self.remediation_drift:
            kinds.append("remediation")
        return f"{self.item_name}: DRIFT [{', '.join(kinds)}] -> {self.action.value}"
