"""Audit trail — one append-only row per processed configuration item.

Rows carry the item name and a short status per script kind. When a path is
given, each row is also appended to a CSV file as it is recorded, so a run
that dies halfway still leaves the rows it produced.
"""

from __future__ import annotations

import csv
import threading
from dataclasses import dataclass
from pathlib import Path

from cisync.models.item import Action, ReconciliationResult

AUDIT_COLUMNS = ("ItemName", "DiscoveryScriptInfo", "RemediationScriptInfo")


class ScriptInfo:
    NO_CHANGE = "NoChange"
    UPDATED = "Updated"
    DRIFTED = "Drifted"  # drift seen, not written (log-only)
    ERROR = "Error"


@dataclass(frozen=True)
class AuditRow:
    item_name: str
    discovery_info: str
    remediation_info: str

    def as_dict(self) -> dict[str, str]:
        return dict(zip(AUDIT_COLUMNS, (self.item_name, self.discovery_info, self.remediation_info)))


def _script_info(drifted: bool, action: Action) -> str:
    if action is Action.FAILED:
        return ScriptInfo.ERROR
    if not drifted:
        return ScriptInfo.NO_CHANGE
    if action is Action.WRITTEN:
        return ScriptInfo.UPDATED
    return ScriptInfo.DRIFTED


def row_for(result: ReconciliationResult) -> AuditRow:
    return AuditRow(
        item_name=result.item_name,
        discovery_info=_script_info(result.discovery_drift, result.action),
        remediation_info=_script_info(result.remediation_drift, result.action),
    )


class AuditTrail:
    """Thread-safe, append-only record of reconciliation results."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()
        self._results: list[ReconciliationResult] = []
        self._rows: list[AuditRow] = []

    def record(self, result: ReconciliationResult) -> AuditRow:
        """Append a result and return its audit row."""
        row = row_for(result)
        with self._lock:
            self._results.append(result)
            self._rows.append(row)
            if self.path:
                self._append_csv(row)
        return row

    def _append_csv(self, row: AuditRow) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        write_header = not self.path.exists() or self.path.stat().st_size == 0
        with open(self.path, "a", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=AUDIT_COLUMNS)
            if write_header:
                writer.writeheader()
            writer.writerow(row.as_dict())

    @property
    def results(self) -> list[ReconciliationResult]:
        with self._lock:
            return list(self._results)

    @property
    def rows(self) -> list[AuditRow]:
        with self._lock:
            return list(self._rows)

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


def read_audit_csv(path: str | Path) -> list[AuditRow]:
    """Load the rows of an audit CSV file."""
    path = Path(path)
    if not path.exists():
        return []
    with open(path, newline="", encoding="utf-8") as f:
        return [
            AuditRow(r["ItemName"], r["DiscoveryScriptInfo"], r["RemediationScriptInfo"])
            for r in csv.DictReader(f)
        ]
