"""Reconciliation orchestrator — the per-item pipeline.

For each configuration item name::

    Fetched -> Extracted -> Compared -> NoOp | Reconciled | Failed

Items are independent, so they run on a bounded thread pool. Every item ends
in exactly one ``ReconciliationResult``, which is appended to the audit trail.
A failing item never stops the others.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from cisync.errors import CisyncError, ExtractionFailed, ItemNotFound, PersistFailed
from cisync.management.client import (
    DEFAULT_FILTER,
    ItemFilter,
    ManagementService,
    find_item,
)
from cisync.models.item import Action, ConfigurationItem, ReconciliationResult
from cisync.models.script import RawScript, ScriptKind
from cisync.package.extractor import extract_scripts
from cisync.package.writer import apply_updates
from cisync.reconcile.audit import AuditTrail
from cisync.reconcile.drift import ScriptPair
from cisync.reconcile.normalizer import DEFAULT_SIGNATURE_MARKER, normalize
from cisync.utils.script_store import ScriptStore

logger = logging.getLogger(__name__)


class Reconciler:
    """Reconciles managed configuration item scripts with the git copies.

    Args:
        service: Management service used to fetch and persist items.
        scripts: Store holding the version-controlled scripts.
        audit: Audit trail receiving one row per item. A fresh in-memory
            trail is used when omitted.
        log_only: Record drift without writing anything back.
        marker: Signing banner stripped before comparison.
        workers: Maximum number of items processed concurrently.
    """

    def __init__(
        self,
        service: ManagementService,
        scripts: ScriptStore,
        audit: AuditTrail | None = None,
        log_only: bool = False,
        marker: str | None = DEFAULT_SIGNATURE_MARKER,
        workers: int = 4,
        item_filter: ItemFilter = DEFAULT_FILTER,
    ):
        self.service = service
        self.scripts = scripts
        self.audit = audit if audit is not None else AuditTrail()
        self.log_only = log_only
        self.marker = marker
        self.workers = max(1, workers)
        self.item_filter = item_filter

    def reconcile_all(self, names: Sequence[str] | None = None) -> list[ReconciliationResult]:
        """Reconcile ``names`` (default: every item directory in the store).

        Items are fetched once for the whole run. Results come back in the
        order of ``names``. When the listing itself fails, every item is
        recorded as failed with that error.
        """
        if names is None:
            names = self.scripts.item_names()
        if not names:
            logger.info("No configuration items to reconcile")
            return []

        try:
            items = self.service.fetch_items(self.item_filter)
        except CisyncError as e:
            logger.error("Could not fetch configuration items: %s", e)
            return self.fail_all(names, e)

        logger.info("Reconciling %d items (%s mode)", len(names), "log-only" if self.log_only else "apply")

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            return list(pool.map(lambda name: self.reconcile_item(name, items), names))

    def fail_all(self, names: Sequence[str], error: CisyncError) -> list[ReconciliationResult]:
        """Record every item as failed with a run-level ``error``."""
        results = []
        for name in names:
            result = ReconciliationResult(name, action=Action.FAILED, error=error.kind, detail=str(error))
            self.audit.record(result)
            results.append(result)
        return results

    def reconcile_item(self, name: str, items: Sequence[ConfigurationItem]) -> ReconciliationResult:
        """Run the pipeline for one item and record its result."""
        try:
            result = self._reconcile(name, items)
        except CisyncError as e:
            logger.warning("%s: %s", name, e)
            result = ReconciliationResult(name, action=Action.FAILED, error=e.kind, detail=str(e))
        except Exception as e:
            logger.exception("%s: unexpected error", name)
            result = ReconciliationResult(name, action=Action.FAILED, error="Error", detail=str(e))

        self.audit.record(result)
        return result

    def _compare(self, item: ConfigurationItem) -> tuple[dict[ScriptKind, ScriptPair], dict[ScriptKind, RawScript | None]]:
        try:
            managed = extract_scripts(item.package_document)
        except ExtractionFailed as e:
            logger.warning("%s: %s; comparing against an empty baseline", item.name, e)
            managed = {kind: None for kind in ScriptKind}

        local = {kind: self.scripts.read(item.name, kind) for kind in ScriptKind}
        pairs = {
            kind: ScriptPair(
                managed=normalize(managed[kind], self.marker),
                local=normalize(local[kind], self.marker),
            )
            for kind in ScriptKind
        }
        return pairs, local

    def _reconcile(self, name: str, items: Sequence[ConfigurationItem]) -> ReconciliationResult:
        item = find_item(items, name)
        if item is None:
            raise ItemNotFound(f"No configuration item named {name!r}")

        pairs, local = self._compare(item)
        drifted = [kind for kind in ScriptKind if pairs[kind].drifted]
        flags = {
            "discovery_drift": ScriptKind.DISCOVERY in drifted,
            "remediation_drift": ScriptKind.REMEDIATION in drifted,
        }

        if not drifted:
            logger.info("%s: no drift", name)
            return ReconciliationResult(name, action=Action.NO_OP, **flags)

        kinds = ", ".join(kind.value for kind in drifted)
        if self.log_only:
            logger.info("%s: drift in %s (log-only)", name, kinds)
            return ReconciliationResult(name, action=Action.LOGGED_ONLY, **flags)

        # The raw file text is authoritative; normalization is only for comparing.
        updates = {kind: local[kind] or RawScript("") for kind in drifted}
        try:
            updated = apply_updates(item, updates)
            outcome = self.service.persist(updated)
            if not outcome.succeeded:
                raise PersistFailed(outcome.error or f"Persist rejected for {name}")
        except CisyncError as e:
            logger.warning("%s: %s", name, e)
            return ReconciliationResult(name, action=Action.FAILED, error=e.kind, detail=str(e), **flags)

        logger.info("%s: wrote %s (revision %d)", name, kinds, updated.revision_id)
        return ReconciliationResult(name, action=Action.WRITTEN, **flags)
