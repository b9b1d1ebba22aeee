"""Script extractor — read embedded script bodies from a package document."""

from __future__ import annotations

from cisync.models.script import RawScript, ScriptKind
from cisync.package.document import SOURCE_ELEMENT, PackageDocument, find_child


def extract_script(document: PackageDocument | str, kind: ScriptKind) -> RawScript | None:
    """Return the embedded body of ``kind``, or ``None`` when it is not present.

    Absence of the Script setting, its ``ScriptDiscoverySource`` or the body
    element is an expected state and never an error.

    Raises:
        ExtractionFailed: If ``document`` is text that cannot be parsed.
    """
    if isinstance(document, str):
        document = PackageDocument.from_text(document)

    setting = document.script_setting()
    if setting is None:
        return None
    source = find_child(setting, SOURCE_ELEMENT)
    if source is None:
        return None
    body = find_child(source, kind.body_element)
    if body is None or body.text is None:
        return None
    return RawScript(body.text)


def extract_scripts(document: PackageDocument | str) -> dict[ScriptKind, RawScript | None]:
    """Extract both script kinds, parsing the document only once."""
    if isinstance(document, str):
        document = PackageDocument.from_text(document)
    return {kind: extract_script(document, kind) for kind in ScriptKind}
