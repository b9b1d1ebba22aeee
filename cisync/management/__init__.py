"""Management service collaborators — fetch and persist configuration items."""

from cisync.management.client import (
    AdminServiceClient,
    InMemoryService,
    ItemFilter,
    ManagementService,
    PersistResult,
)

__all__ = [
    "AdminServiceClient",
    "InMemoryService",
    "ItemFilter",
    "ManagementService",
    "PersistResult",
]
