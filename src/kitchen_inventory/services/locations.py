"""Storage location lookups."""

from dataclasses import dataclass
from typing import Protocol

from kitchen_inventory.domain.errors import ItemNotFoundError
from kitchen_inventory.domain.packages import LocationType, OwnerScope, StorageLocation


class LocationRepository(Protocol):
    """Persistence interface for storage locations."""

    def list_locations(self, scope: OwnerScope) -> list[StorageLocation]:
        """Return the locations visible in a scope."""


@dataclass
class LocationService:
    """Application service for storage locations."""

    repository: LocationRepository

    def list_locations(self, scope: OwnerScope) -> list[StorageLocation]:
        """Return visible locations ordered by type then name."""
        order = list(LocationType)
        return sorted(
            self.repository.list_locations(scope),
            key=lambda location: (order.index(location.type), location.name),
        )

    def get_location(self, scope: OwnerScope, location_id: str) -> StorageLocation:
        """Return a visible location or raise ItemNotFoundError."""
        for location in self.repository.list_locations(scope):
            if location.id == location_id:
                return location
        raise ItemNotFoundError(f"Unknown storage location: {location_id}")

    def first_of_type(
        self, scope: OwnerScope, location_type: LocationType
    ) -> StorageLocation:
        """Return the first visible location of a type."""
        for location in self.list_locations(scope):
            if location.type is location_type:
                return location
        raise ItemNotFoundError(f"No {location_type.value} location available")
