"""Package document — parse, inspect and serialize ``SDMPackageXML``.

A configuration item's package is an XML ``DesiredConfigurationDigest``.
Settings live as ``SimpleSetting`` nodes; the one whose annotation display
name is ``Script`` carries the embedded scripts::

    <SimpleSetting LogicalName="ScriptSetting_..." DataType="Int64">
      <Annotation>
        <DisplayName Text="Script" />
      </Annotation>
      <ScriptDiscoverySource Is64Bit="true">
        <DiscoveryScriptBody ScriptType="PowerShell">...</DiscoveryScriptBody>
        <RemediationScriptBody ScriptType="PowerShell">...</RemediationScriptBody>
      </ScriptDiscoverySource>
    </SimpleSetting>

Elements are matched by local name. Namespace URIs survive a round trip;
their prefixes may be renamed.
"""

from __future__ import annotations

import copy
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Union

from cisync.errors import ExtractionFailed

logger = logging.getLogger(__name__)

SCRIPT_DISPLAY_NAME = "Script"
SETTING_ELEMENT = "SimpleSetting"
SOURCE_ELEMENT = "ScriptDiscoverySource"

# The service declares encoding="utf-16" on text that is already decoded.
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part of an ElementTree tag."""
    return tag.rsplit("}", 1)[-1]


def namespace_of(tag: str) -> str:
    """Return the ``{namespace}`` prefix of a tag, or an empty string."""
    if tag.startswith("{"):
        return tag[: tag.index("}") + 1]
    return ""


def find_child(element: ET.Element, name: str) -> ET.Element | None:
    """First direct child with the given local name."""
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def is_script_setting(element: ET.Element) -> bool:
    """True when a setting's annotation display name is ``Script``."""
    if local_name(element.tag) != SETTING_ELEMENT:
        return False
    annotation = find_child(element, "Annotation")
    if annotation is None:
        return False
    display = find_child(annotation, "DisplayName")
    return display is not None and display.get("Text") == SCRIPT_DISPLAY_NAME


# ── Script setting location ──────────────────────────────────────────


@dataclass(frozen=True)
class Indexed:
    """The settings collection holds several entries; Script is at ``index``."""

    index: int


@dataclass(frozen=True)
class Singular:
    """The settings collection holds exactly one entry, the Script setting."""


@dataclass(frozen=True)
class Absent:
    """No Script-annotated setting exists."""


SettingLocation = Union[Indexed, Singular, Absent]


class PackageDocument:
    """A parsed package document.

    Instances own their element tree. Use :meth:`copy` before mutating a
    document that somebody else still holds.
    """

    def __init__(self, root: ET.Element):
        self.root = root

    @classmethod
    def from_text(cls, text: str) -> "PackageDocument":
        """Parse package XML.

        Raises:
            ExtractionFailed: If the text is empty or not well-formed XML.
        """
        if not text or not text.strip():
            raise ExtractionFailed("Package document is empty")
        try:
            root = ET.fromstring(_XML_DECLARATION.sub("", text, count=1))
        except ET.ParseError as e:
            raise ExtractionFailed(f"Package document is not valid XML: {e}") from e
        return cls(root)

    def copy(self) -> "PackageDocument":
        return PackageDocument(copy.deepcopy(self.root))

    def settings(self) -> list[ET.Element]:
        """All ``SimpleSetting`` nodes in document order."""
        return [el for el in self.root.iter() if local_name(el.tag) == SETTING_ELEMENT]

    def locate_script_setting(self) -> SettingLocation:
        """Classify where the Script setting sits, inspecting the document once."""
        settings = self.settings()
        matches = [i for i, el in enumerate(settings) if is_script_setting(el)]
        if not matches:
            return Absent()
        if len(matches) > 1:
            logger.warning(
                "Package holds %d Script settings; using the one at position %d",
                len(matches),
                matches[0],
            )
        if len(settings) == 1:
            return Singular()
        return Indexed(matches[0])

    def script_setting(self, location: SettingLocation | None = None) -> ET.Element | None:
        """Resolve a location to its setting element (``None`` when absent)."""
        if location is None:
            location = self.locate_script_setting()
        if isinstance(location, Absent):
            return None
        settings = self.settings()
        if isinstance(location, Singular):
            return settings[0]
        return settings[location.index]

    def to_text(self) -> str:
        """Serialize back to XML text.

        Namespace URIs are kept; ElementTree picks its own prefixes
        (``ns0``, ``ns1``) for them. Carriage returns are written as
        character references so CRLF script bodies survive a reparse.
        """
        return ET.tostring(self.root, encoding="unicode").replace("\r", "&#13;")
