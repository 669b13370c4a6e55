"""Supabase repository for user settings."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from kitchen_inventory.services.user_settings import UserSettingsRepository


@dataclass
class SupabaseUserSettingsRepository(UserSettingsRepository):
    """Supabase implementation for user settings."""

    client: Client

    def get_unit_system(self, user_id: UUID) -> str | None:
        """Return the stored unit system for a user."""
        response = (
            self.client.table("user_settings")
            .select("unit_system")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0].get("unit_system")

    def set_unit_system(self, user_id: UUID, unit_system: str) -> None:
        """Store the user's unit system, creating the settings row if needed."""
        self.client.table("user_settings").upsert(
            {
                "user_id": str(user_id),
                "unit_system": unit_system,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            on_conflict="user_id",
        ).execute()
