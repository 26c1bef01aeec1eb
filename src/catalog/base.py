"""Base class for resource catalogs."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from src.models.resource import Environment, ResourceDescriptor, ResourceKind


class ResourceCatalog(ABC):
    """Abstract base class for resource catalogs.

    Each catalog should:
    1. List resources of a (kind, environment) pair as a consistent snapshot
       (no duplicates, no partial records), raising CatalogUnavailable when
       the backing system cannot be reached
    2. Delete a single resource, raising ResourceNotFound when it is already
       gone and TransientError for failures worth retrying

    Implementations must be safe to call from several worker threads.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__module__)

    @abstractmethod
    def list(self, kind: ResourceKind, environment: Environment) -> list[ResourceDescriptor]:
        """List resources of a kind in an environment.

        Raises:
            CatalogUnavailable: If the backing system cannot be reached
        """

    @abstractmethod
    def delete(self, resource: ResourceDescriptor) -> None:
        """Delete a resource.

        Raises:
            ResourceNotFound: If the resource no longer exists
            TransientError: If the delete failed and may succeed on retry
        """
