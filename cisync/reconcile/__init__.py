"""Reconciliation engine — normalize, detect drift, write back, audit.

This package provides:
- Normalizer: canonical script text, order- and whitespace-stable
- Drift detection: digest comparison of canonical scripts
- Orchestrator: the per-item pipeline over a worker pool
- Audit trail: one append-only row per processed item
"""
