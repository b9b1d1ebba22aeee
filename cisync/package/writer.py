"""Package writer — place new script bodies into a package document.

The Script setting is located once (``Indexed``, ``Singular`` or ``Absent``)
and a single locate-or-create step then sets the body text:

1. The body element exists: replace its text.
2. The body element is missing: create it (and its ``ScriptDiscoverySource``
   parent when that is missing too) with ``ScriptType="PowerShell"``, then
   set its text.
3. There is no Script setting: raise ``WriteFailed``.

All edits happen on a private copy of the document. A failed write leaves the
caller's document untouched.
"""

from __future__ import annotations

import dataclasses
import logging
import xml.etree.ElementTree as ET
from typing import Mapping

from cisync.errors import CisyncError, WriteFailed
from cisync.models.item import ConfigurationItem
from cisync.models.script import CanonicalScript, RawScript, ScriptKind
from cisync.package.document import (
    SOURCE_ELEMENT,
    Absent,
    PackageDocument,
    find_child,
    namespace_of,
)

logger = logging.getLogger(__name__)

SCRIPT_TYPE = "PowerShell"

ScriptText = RawScript | CanonicalScript


def _locate_or_create_body(setting: ET.Element, kind: ScriptKind) -> ET.Element:
    source = find_child(setting, SOURCE_ELEMENT)
    if source is None:
        source = ET.SubElement(setting, namespace_of(setting.tag) + SOURCE_ELEMENT)
        logger.debug("Created %s under Script setting", SOURCE_ELEMENT)

    body = find_child(source, kind.body_element)
    if body is None:
        body = ET.SubElement(
            source,
            namespace_of(source.tag) + kind.body_element,
            {"ScriptType": SCRIPT_TYPE},
        )
        body.text = ""
        logger.debug("Created %s element", kind.body_element)
    return body


def _write_into(document: PackageDocument, kind: ScriptKind, script: ScriptText) -> None:
    location = document.locate_script_setting()
    if isinstance(location, Absent):
        raise WriteFailed(f"No Script setting to hold the {kind.value} script")
    setting = document.script_setting(location)
    body = _locate_or_create_body(setting, kind)
    body.text = script.text


def write_script(document: PackageDocument | str, kind: ScriptKind, script: ScriptText) -> PackageDocument:
    """Return a new document with the ``kind`` body set to ``script``.

    Raises:
        WriteFailed: If the body cannot be placed. The input is unchanged.
    """
    return write_scripts(document, {kind: script})


def write_scripts(
    document: PackageDocument | str,
    updates: Mapping[ScriptKind, ScriptText],
) -> PackageDocument:
    """Apply several body updates to one private copy of ``document``."""
    try:
        if isinstance(document, str):
            working = PackageDocument.from_text(document)
        else:
            working = document.copy()
        for kind, script in updates.items():
            _write_into(working, kind, script)
    except WriteFailed:
        raise
    except CisyncError as e:
        raise WriteFailed(str(e)) from e
    except Exception as e:
        raise WriteFailed(f"Unexpected package structure: {e}") from e
    return working


def _bump_document_version(document: PackageDocument) -> None:
    """Increment the ``Version`` attribute of the top-level rule container."""
    for child in document.root:
        version = child.get("Version")
        if version is None:
            continue
        try:
            child.set("Version", str(int(version) + 1))
        except ValueError:
            logger.debug("Non-numeric package Version %r left unchanged", version)
        return


def apply_updates(
    item: ConfigurationItem,
    updates: Mapping[ScriptKind, ScriptText],
) -> ConfigurationItem:
    """Write every update into ``item`` and bump its revision by one.

    Returns a new item; ``item`` itself is never modified.

    Raises:
        WriteFailed: If any body cannot be written or the result cannot be
            serialized. No partially written document is returned.
    """
    if not updates:
        return item

    document = write_scripts(item.package_document, updates)
    _bump_document_version(document)
    try:
        text = document.to_text()
    except Exception as e:
        raise WriteFailed(f"Could not serialize package for {item.name}: {e}") from e

    return dataclasses.replace(
        item,
        package_document=text,
        revision_id=item.revision_id + 1,
    )
