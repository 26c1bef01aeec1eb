"""In-memory resource catalog.

Backs dry runs and local rehearsals from a YAML inventory file::

    resources:
      - kind: image
        environment: dev
        identifier: web:build-101
        created_at: 2026-01-04T10:00:00Z
        tags: [build]
        size_bytes: 104857600
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Iterable, Union

import yaml

from src.catalog.base import ResourceCatalog
from src.errors import CatalogUnavailable, ResourceNotFound
from src.models.resource import Environment, ResourceDescriptor, ResourceKind


class InMemoryCatalog(ResourceCatalog):
    """Catalog holding descriptors in memory.

    Entries are keyed by (kind, environment, identifier); a repeated key
    replaces the earlier entry so listings never contain duplicates.

    Attributes:
        deleted: Descriptors deleted through this catalog, in deletion order
    """

    def __init__(self, resources: Iterable[ResourceDescriptor] = ()) -> None:
        super().__init__()
        self._lock = threading.Lock()
        self._resources: dict[tuple[ResourceKind, Environment, str], ResourceDescriptor] = {}
        self.deleted: list[ResourceDescriptor] = []
        for resource in resources:
            self.add(resource)

    def add(self, resource: ResourceDescriptor) -> None:
        with self._lock:
            self._resources[(resource.kind, resource.environment, resource.identifier)] = resource

    def list(self, kind: ResourceKind, environment: Environment) -> list[ResourceDescriptor]:
        with self._lock:
            return [r for (k, e, _), r in self._resources.items() if k == kind and e == environment]

    def delete(self, resource: ResourceDescriptor) -> None:
        key = (resource.kind, resource.environment, resource.identifier)
        with self._lock:
            if key not in self._resources:
                raise ResourceNotFound(f"{resource.kind.value} {resource.identifier} not found")
            del self._resources[key]
            self.deleted.append(resource)
        self.logger.debug(f"Deleted {resource.kind.value} {resource.identifier} from in-memory catalog")

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> InMemoryCatalog:
        """Load a catalog from a YAML inventory file.

        Raises:
            CatalogUnavailable: If the file cannot be read or parsed
        """
        inventory_path = Path(path)
        try:
            with open(inventory_path, "r") as f:
                data = yaml.safe_load(f) or {}
            entries = data.get("resources") or []
            resources = [ResourceDescriptor.from_dict(entry) for entry in entries]
        except OSError as e:
            raise CatalogUnavailable(f"Cannot read inventory {inventory_path}: {e}")
        except (yaml.YAMLError, AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogUnavailable(f"Invalid inventory {inventory_path}: {e}")

        return cls(resources)
