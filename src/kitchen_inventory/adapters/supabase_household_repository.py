"""Supabase repository for household membership."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from kitchen_inventory.services.households import (
    HouseholdMembership,
    HouseholdRepository,
)


@dataclass
class SupabaseHouseholdRepository(HouseholdRepository):
    """Supabase-backed household repository."""

    client: Client

    def get_membership(self, user_id: UUID) -> HouseholdMembership | None:
        """Return the user's household with every member id."""
        response = (
            self.client.table("household_members")
            .select("household_id")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        household_id = str(response.data[0]["household_id"])
        members_response = (
            self.client.table("household_members")
            .select("user_id")
            .eq("household_id", household_id)
            .execute()
        )
        return HouseholdMembership(
            household_id=UUID(household_id),
            member_ids=frozenset(
                UUID(str(row["user_id"])) for row in members_response.data or []
            ),
        )
