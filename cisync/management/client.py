"""Management service clients.

The reconciliation engine only needs two operations: list the configuration
items matching a fixed filter, and persist an updated item. ``AdminServiceClient``
talks to the Configuration Manager Admin Service over HTTPS with httpx;
``InMemoryService`` keeps items in a dict for dry runs and tests.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol

import httpx

from cisync.errors import FetchFailed, TransportTimeout
from cisync.models.item import CONFIGURATION_ITEM_TYPE, ConfigurationItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemFilter:
    """Which configuration items a run looks at."""

    include_hidden: bool = False
    include_expired: bool = False
    ci_type_id: int = CONFIGURATION_ITEM_TYPE

    def matches(self, item: ConfigurationItem) -> bool:
        if item.is_hidden and not self.include_hidden:
            return False
        if item.is_expired and not self.include_expired:
            return False
        return item.ci_type_id == self.ci_type_id

    def odata(self) -> str:
        """Render as an OData ``$filter`` expression."""
        clauses = []
        if not self.include_hidden:
            clauses.append("IsHidden eq false")
        if not self.include_expired:
            clauses.append("IsExpired eq false")
        clauses.append(f"CIType_ID eq {self.ci_type_id}")
        return " and ".join(clauses)


# Non-hidden, non-expired configuration items.
DEFAULT_FILTER = ItemFilter()


@dataclass(frozen=True)
class PersistResult:
    succeeded: bool
    error: str = ""


class ManagementService(Protocol):
    def fetch_items(self, item_filter: ItemFilter = DEFAULT_FILTER) -> list[ConfigurationItem]: ...

    def persist(self, item: ConfigurationItem) -> PersistResult: ...


def find_item(items: Iterable[ConfigurationItem], name: str) -> ConfigurationItem | None:
    """Exact, case-sensitive lookup by display name."""
    for item in items:
        if item.name == name:
            return item
    return None


# ── Admin Service (HTTPS) ────────────────────────────────────────────


class AdminServiceClient:
    """Client for the Configuration Manager Admin Service WMI routes.

    Parameters
    ----------
    base_url : str
        Admin Service root, e.g. ``https://cm01.corp.example/AdminService``.
    timeout : float
        Bound in seconds for every request. A request that exceeds it raises
        :class:`TransportTimeout`.
    auth : httpx auth, optional
        Anything httpx accepts as ``auth``. Credential acquisition is left
        to the caller.
    """

    LIST_ROUTE = "wmi/SMS_ConfigurationItemLatest"
    ITEM_ROUTE = "wmi/SMS_ConfigurationItem({ci_id})"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        auth: Any = None,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            auth=auth,
            verify=verify,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "AdminServiceClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @staticmethod
    def _item_from_payload(data: dict[str, Any]) -> ConfigurationItem:
        return ConfigurationItem(
            name=data.get("LocalizedDisplayName", ""),
            package_document=data.get("SDMPackageXML") or "",
            revision_id=int(data.get("SDMPackageVersion") or 1),
            ci_id=int(data.get("CI_ID") or 0),
            ci_unique_id=data.get("CI_UniqueID", ""),
            ci_type_id=int(data.get("CIType_ID") or CONFIGURATION_ITEM_TYPE),
            is_hidden=bool(data.get("IsHidden", False)),
            is_expired=bool(data.get("IsExpired", False)),
        )

    def _get(self, route: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        try:
            resp = self._client.get(route, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.TimeoutException as exc:
            raise TransportTimeout(f"Admin Service request timed out: {route}") from exc
        except httpx.HTTPStatusError as exc:
            raise FetchFailed(
                f"Admin Service error {exc.response.status_code} for {route}"
            ) from exc
        except httpx.RequestError as exc:
            raise FetchFailed(f"Failed to reach Admin Service: {exc}") from exc

    def fetch_items(self, item_filter: ItemFilter = DEFAULT_FILTER) -> list[ConfigurationItem]:
        """List matching items.

        ``SDMPackageXML`` is a lazy property in WMI, so list results that omit
        it are fetched one by one.
        """
        data = self._get(self.LIST_ROUTE, params={"$filter": item_filter.odata()})
        items = []
        for entry in data.get("value", []):
            if not entry.get("SDMPackageXML") and entry.get("CI_ID"):
                detail = self._get(self.ITEM_ROUTE.format(ci_id=entry["CI_ID"]))
                values = detail.get("value") or [{}]
                entry = {**entry, **values[0]}
            item = self._item_from_payload(entry)
            if item_filter.matches(item):
                items.append(item)
        logger.info("Fetched %d configuration items", len(items))
        return items

    def persist(self, item: ConfigurationItem) -> PersistResult:
        """Write the item's package document back.

        Raises:
            TransportTimeout: If the request exceeds the client timeout.
        """
        route = self.ITEM_ROUTE.format(ci_id=item.ci_id)
        body = {
            "SDMPackageXML": item.package_document,
            "SDMPackageVersion": item.revision_id,
        }
        try:
            resp = self._client.post(route, json=body)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TransportTimeout(f"Persisting {item.name} timed out") from exc
        except httpx.HTTPStatusError as exc:
            return PersistResult(False, f"Admin Service error {exc.response.status_code}")
        except httpx.RequestError as exc:
            return PersistResult(False, f"Failed to reach Admin Service: {exc}")
        return PersistResult(True)


# ── In-memory ────────────────────────────────────────────────────────


@dataclass
class InMemoryService:
    """Holds items in memory. Persisted items replace the stored copy."""

    items: list[ConfigurationItem] = field(default_factory=list)
    reject: set[str] = field(default_factory=set)  # names whose persist fails
    persisted: list[ConfigurationItem] = field(default_factory=list)
    fetch_count: int = 0

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def fetch_items(self, item_filter: ItemFilter = DEFAULT_FILTER) -> list[ConfigurationItem]:
        with self._lock:
            self.fetch_count += 1
            return [i for i in self.items if item_filter.matches(i)]

    def persist(self, item: ConfigurationItem) -> PersistResult:
        with self._lock:
            if item.name in self.reject:
                return PersistResult(False, "rejected")
            self.persisted.append(item)
            self.items = [item if i.name == item.name else i for i in self.items]
        return PersistResult(True)
