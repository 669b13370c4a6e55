"""Supabase repository for storage locations."""

from dataclasses import dataclass

from supabase import Client

from kitchen_inventory.domain.packages import LocationType, OwnerScope, StorageLocation
from kitchen_inventory.services.locations import LocationRepository


@dataclass
class SupabaseLocationRepository(LocationRepository):
    """Supabase-backed storage location repository."""

    client: Client

    def list_locations(self, scope: OwnerScope) -> list[StorageLocation]:
        """Return the user's locations, or the household's when shared."""
        query = self.client.table("storage_locations").select("id, name, type")
        if scope.household_id is not None:
            query = query.eq("household_id", str(scope.household_id))
        else:
            query = query.eq("owner_id", str(scope.user_id))
        response = query.execute()
        return [
            StorageLocation(
                id=str(row["id"]),
                name=str(row.get("name", "")),
                type=LocationType(row["type"]),
            )
            for row in response.data or []
        ]
