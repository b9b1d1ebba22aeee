"""Error kinds raised by the reconciliation engine and its collaborators.

A script that is simply missing from a package is not an error; the
extractor returns ``None`` for it.
"""

from __future__ import annotations


class CisyncError(Exception):
    """Base class for all cisync errors."""

    kind = "Error"


class ConfigError(CisyncError):
    """The configuration file is missing or malformed."""

    kind = "ConfigError"


class ItemNotFound(CisyncError):
    """No fetched configuration item carries the requested display name."""

    kind = "ItemNotFound"


class ExtractionFailed(CisyncError):
    """The package document could not be read."""

    kind = "ExtractionFailed"


class WriteFailed(CisyncError):
    """The package writer could not place the new script body."""

    kind = "WriteFailed"


class PersistFailed(CisyncError):
    """The management service rejected the updated item."""

    kind = "PersistFailed"


class TransportTimeout(CisyncError):
    """A git or management service call exceeded its time bound."""

    kind = "TransportTimeout"


class FetchFailed(CisyncError):
    """The management service could not list configuration items."""

    kind = "FetchFailed"


class SyncFailed(CisyncError):
    """The git checkout could not be brought up to date."""

    kind = "SyncFailed"
