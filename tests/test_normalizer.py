"""Tests for script normalization and drift detection."""

import pytest

from cisync.models.script import CanonicalScript, RawScript
from cisync.reconcile.drift import ScriptPair, has_drift, scripts_match
from cisync.reconcile.normalizer import (
    DEFAULT_SIGNATURE_MARKER,
    normalize,
    normalize_lines,
)

MARKER = DEFAULT_SIGNATURE_MARKER


def _raw(*lines):
    return RawScript("\n".join(lines))


# --- Normalizer ---


def test_normalize_strips_and_drops_blank_lines():
    raw = _raw("  $a = 1   ", "", "\t", "Write-Output $a\t")
    assert normalize(raw).text == "$a = 1\nWrite-Output $a"


def test_normalize_is_idempotent():
    samples = [
        _raw("", "  x ", "y", "", ""),
        _raw("a", MARKER, "b"),
        _raw(),
        RawScript("one\r\ntwo\r\n\r\n"),
    ]
    for raw in samples:
        once = normalize(raw, MARKER)
        twice = normalize(RawScript(once.text), MARKER)
        assert twice == once


def test_normalize_removes_signature_block():
    raw = _raw("A", "B", MARKER, "C", "D")
    assert normalize(raw, MARKER) == normalize(_raw("A", "B"), MARKER)


def test_normalize_truncates_at_earliest_marker():
    raw = _raw("keep", f"   {MARKER}", "drop", MARKER, "drop too")
    assert normalize_lines(raw.lines(), MARKER) == ["keep"]


def test_normalize_without_marker_keeps_everything():
    raw = _raw("A", MARKER, "B")
    assert normalize(raw, None).text == f"A\n{MARKER}\nB"


def test_normalize_absent_script_is_empty():
    assert normalize(None) == CanonicalScript("")
    assert normalize(None).is_empty


# --- Drift detector ---


def test_whitespace_only_differences_do_not_drift():
    managed = normalize(_raw("Get-Service", "", "Stop-Service spooler"))
    local = normalize(_raw("Get-Service   ", "Stop-Service spooler", "", ""))
    assert scripts_match(managed, local)
    assert not has_drift(managed, local)


def test_drift_is_symmetric_and_reflexive():
    a = normalize(_raw("one"))
    b = normalize(_raw("two"))
    assert has_drift(a, b) == has_drift(b, a)
    assert not has_drift(a, a)
    assert has_drift(a, b)


def test_absent_versus_absent_is_not_drift():
    assert not has_drift(normalize(None), normalize(None))
    assert not has_drift(normalize(None), normalize(_raw("", "   ")))


def test_present_versus_absent_is_drift():
    assert has_drift(normalize(_raw("exit 0")), normalize(None))


def test_raw_scripts_cannot_be_compared():
    with pytest.raises(TypeError):
        scripts_match(RawScript("a"), normalize(_raw("a")))


def test_script_pair_drifted():
    pair = ScriptPair(managed=normalize(_raw("a")), local=normalize(_raw("a", "")))
    assert not pair.drifted
    pair = ScriptPair(managed=normalize(_raw("a")), local=normalize(_raw("b")))
    assert pair.drifted


def test_digest_is_sha256_hex():
    digest = CanonicalScript("abc").digest()
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
