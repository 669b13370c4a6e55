"""User settings service."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from kitchen_inventory.config import parse_unit_system
from kitchen_inventory.domain.units import Unit, units_for_system


class UserSettingsRepository(Protocol):
    """Persistence interface for user settings."""

    def get_unit_system(self, user_id: UUID) -> str | None:
        """Return the user's unit system if set."""

    def set_unit_system(self, user_id: UUID, unit_system: str) -> None:
        """Update the user's unit system."""


@dataclass
class UserSettingsService:
    """Service for user settings."""

    repository: UserSettingsRepository
    default_unit_system: str = "metric"

    def get_unit_system(self, user_id: UUID) -> str:
        """Return the user's unit system or the default when unset."""
        stored = self.repository.get_unit_system(user_id)
        return parse_unit_system(stored) or self.default_unit_system

    def set_unit_system(self, user_id: UUID, unit_system: str) -> str:
        """Validate and persist a user's unit system."""
        parsed = parse_unit_system(unit_system)
        if parsed is None:
            raise ValueError(f"Unknown unit system: {unit_system}")
        self.repository.set_unit_system(user_id, parsed)
        return parsed

    def offered_units(self, user_id: UUID) -> list[Unit]:
        """Return the units input forms should offer this user."""
        return units_for_system(self.get_unit_system(user_id))
