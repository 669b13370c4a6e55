"""Household membership lookups used to scope inventory."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from kitchen_inventory.domain.packages import OwnerScope


@dataclass(frozen=True)
class HouseholdMembership:
    """A household a user belongs to, with every member id."""

    household_id: UUID
    member_ids: frozenset[UUID]


class HouseholdRepository(Protocol):
    """Persistence interface for household membership."""

    def get_membership(self, user_id: UUID) -> HouseholdMembership | None:
        """Return the user's household, if they are in one."""


@dataclass
class HouseholdService:
    """Application service resolving who can see which inventory."""

    repository: HouseholdRepository

    def resolve_scope(self, user_id: UUID) -> OwnerScope:
        """Return the ownership scope for a user."""
        membership = self.repository.get_membership(user_id)
        if membership is None:
            return OwnerScope(user_id=user_id)
        return OwnerScope(
            user_id=user_id,
            household_id=membership.household_id,
            household_member_ids=membership.member_ids | {user_id},
        )
