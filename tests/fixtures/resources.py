"""Test fixtures for building resource descriptors and catalogs."""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from src.catalog.base import ResourceCatalog
from src.errors import CatalogUnavailable, ResourceNotFound, TransientError
from src.models.resource import Environment, ResourceDescriptor, ResourceKind

NOW = datetime(2026, 3, 15, 12, 0, 0, tzinfo=timezone.utc)


def make_resource(
    identifier: str = "res-1",
    days_old: float = 1,
    kind: ResourceKind = ResourceKind.IMAGE,
    environment: Environment = Environment.DEV,
    tags: Iterable[str] = (),
    size_bytes: Optional[int] = None,
    now: datetime = NOW,
) -> ResourceDescriptor:
    """Create a descriptor created ``days_old`` days before ``now``."""
    return ResourceDescriptor(
        kind=kind,
        identifier=identifier,
        created_at=now - timedelta(days=days_old),
        environment=environment,
        tags=frozenset(tags),
        size_bytes=size_bytes,
    )


def images_by_age(count: int, environment: Environment = Environment.DEV) -> list[ResourceDescriptor]:
    """Images ``img-01`` .. ``img-NN`` created 1..N days before NOW."""
    return [make_resource(f"img-{day:02d}", days_old=day, environment=environment) for day in range(1, count + 1)]


class ScriptedCatalog(ResourceCatalog):
    """Catalog whose list/delete behavior is scripted per identifier.

    Attributes:
        listings: (kind, environment) -> resources, or an exception to raise
        failures: identifier -> exceptions raised by successive delete calls;
            once exhausted, deletes succeed
        delete_calls: identifiers passed to delete, in call order
    """

    def __init__(
        self,
        listings: Optional[dict] = None,
        failures: Optional[dict[str, list[Exception]]] = None,
    ) -> None:
        super().__init__()
        self.listings = listings or {}
        self.failures = {key: list(value) for key, value in (failures or {}).items()}
        self.delete_calls: list[str] = []
        self._lock = threading.Lock()

    def list(self, kind: ResourceKind, environment: Environment) -> list[ResourceDescriptor]:
        listing = self.listings.get((kind, environment), [])
        if isinstance(listing, Exception):
            raise listing
        return list(listing)

    def delete(self, resource: ResourceDescriptor) -> None:
        with self._lock:
            self.delete_calls.append(resource.identifier)
            pending = self.failures.get(resource.identifier)
            error = pending.pop(0) if pending else None
        if error is not None:
            raise error


class CountingCatalog(ScriptedCatalog):
    """Catalog recording the peak number of concurrent deletes per kind."""

    def __init__(self, listings: Optional[dict] = None, delay: float = 0.01) -> None:
        super().__init__(listings=listings)
        self.delay = delay
        self.active: dict[ResourceKind, int] = {}
        self.peak: dict[ResourceKind, int] = {}

    def delete(self, resource: ResourceDescriptor) -> None:
        with self._lock:
            self.active[resource.kind] = self.active.get(resource.kind, 0) + 1
            self.peak[resource.kind] = max(self.peak.get(resource.kind, 0), self.active[resource.kind])
        time.sleep(self.delay)
        with self._lock:
            self.active[resource.kind] -= 1
        super().delete(resource)


def unavailable(message: str = "connection refused") -> CatalogUnavailable:
    return CatalogUnavailable(message)


def transient(message: str = "Throttling: Rate exceeded") -> TransientError:
    return TransientError(message, error_code="Throttling")


def not_found(identifier: str = "res-1") -> ResourceNotFound:
    return ResourceNotFound(f"{identifier} already deleted")
