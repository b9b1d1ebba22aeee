"""Script store — read version-controlled scripts from the checked-out tree.

Layout::

    <scripts root>/
        <configuration item name>/
            DiscoveryScript      (or DiscoveryScript.ps1)
            RemediationScript    (or RemediationScript.ps1)
"""

from __future__ import annotations

from pathlib import Path

from cisync.models.script import RawScript, ScriptKind

SCRIPT_SUFFIXES = ("", ".ps1")


class ScriptStore:
    """Read-only access to the per-item script directories."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def item_names(self) -> list[str]:
        """Names of all item directories holding at least one script file."""
        if not self.root.is_dir():
            return []
        names = []
        for child in sorted(self.root.iterdir()):
            if child.is_dir() and not child.name.startswith("."):
                if any(self.script_path(child.name, kind) for kind in ScriptKind):
                    names.append(child.name)
        return names

    def script_path(self, item_name: str, kind: ScriptKind) -> Path | None:
        directory = self.root / item_name
        for suffix in SCRIPT_SUFFIXES:
            path = directory / f"{kind.file_name}{suffix}"
            if path.is_file():
                return path
        return None

    def read(self, item_name: str, kind: ScriptKind) -> RawScript | None:
        """Raw file content, or ``None`` when the file does not exist."""
        path = self.script_path(item_name, kind)
        if path is None:
            return None
        # bytes, so CRLF line endings are kept as committed
        return RawScript(path.read_bytes().decode("utf-8-sig"))
