"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID, uuid4

import pytest

from kitchen_inventory.config import Settings
from kitchen_inventory.containers import AppContainer
from kitchen_inventory.domain.errors import ConcurrencyConflictError
from kitchen_inventory.domain.packages import (
    LocationType,
    OwnerScope,
    PackageRecord,
    StorageLocation,
)
from kitchen_inventory.domain.transfers import TransferDiff, apply_diff
from kitchen_inventory.domain.units import Unit
from kitchen_inventory.services.audit import (
    AuditEvent,
    AuditRepository,
    AuditService,
)
from kitchen_inventory.services.cooking import CookingService
from kitchen_inventory.services.households import (
    HouseholdMembership,
    HouseholdRepository,
    HouseholdService,
)
from kitchen_inventory.services.inventory import InventoryRepository, InventoryService
from kitchen_inventory.services.locations import LocationRepository, LocationService
from kitchen_inventory.services.nutrition import NutritionEstimator, NutritionService
from kitchen_inventory.services.rate_limit import InMemoryRateLimiter
from kitchen_inventory.services.user_settings import (
    UserSettingsRepository,
    UserSettingsService,
)

FRIDGE = StorageLocation(id="fridge", name="Kitchen fridge", type=LocationType.FRIDGE)
FREEZER = StorageLocation(id="freezer", name="Chest freezer", type=LocationType.FREEZER)
PANTRY = StorageLocation(id="pantry", name="Pantry", type=LocationType.PANTRY)


def make_package(  # noqa: PLR0913
    item_name: str,
    original_quantity: float,
    unit: Unit = Unit.G,
    total_quantity: float | None = None,
    location_id: str = PANTRY.id,
    expiry_date: date | None = None,
    is_private: bool = False,
    owner_id: UUID | None = None,
) -> PackageRecord:
    """Build a package record with test defaults."""
    return PackageRecord.create(
        item_name=item_name,
        original_quantity=original_quantity,
        unit=unit,
        location_id=location_id,
        total_quantity=total_quantity,
        expiry_date=expiry_date,
        is_private=is_private,
        owner_id=owner_id,
    )


@dataclass
class InMemoryInventoryRepository(InventoryRepository):
    """In-memory inventory repository for tests."""

    packages: dict[UUID, PackageRecord] = field(default_factory=dict)
    applied: list[TransferDiff] = field(default_factory=list)
    conflicts_to_raise: int = 0

    def add(self, *packages: PackageRecord) -> None:
        for package in packages:
            self.packages[package.id] = package

    def list_packages(self, scope: OwnerScope) -> list[PackageRecord]:
        return list(self.packages.values())

    def get_package(self, package_id: UUID) -> PackageRecord | None:
        return self.packages.get(package_id)

    def apply_diff(self, scope: OwnerScope, diff: TransferDiff) -> None:
        if self.conflicts_to_raise:
            self.conflicts_to_raise -= 1
            raise ConcurrencyConflictError("Package changed since it was read")
        updated = apply_diff(self.packages.values(), diff)
        self.packages = {package.id: package for package in updated}
        self.applied.append(diff)


@dataclass
class InMemoryLocationRepository(LocationRepository):
    """In-memory storage location repository for tests."""

    locations: list[StorageLocation] = field(
        default_factory=lambda: [PANTRY, FREEZER, FRIDGE]
    )

    def list_locations(self, scope: OwnerScope) -> list[StorageLocation]:
        return list(self.locations)


@dataclass
class InMemoryHouseholdRepository(HouseholdRepository):
    """In-memory household repository for tests."""

    memberships: dict[UUID, HouseholdMembership] = field(default_factory=dict)

    def get_membership(self, user_id: UUID) -> HouseholdMembership | None:
        return self.memberships.get(user_id)


@dataclass
class InMemoryUserSettingsRepository(UserSettingsRepository):
    """In-memory user settings repository for tests."""

    unit_systems: dict[UUID, str] = field(default_factory=dict)

    def get_unit_system(self, user_id: UUID) -> str | None:
        return self.unit_systems.get(user_id)

    def set_unit_system(self, user_id: UUID, unit_system: str) -> None:
        self.unit_systems[user_id] = unit_system


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[AuditEvent] = field(default_factory=list)

    def create_event(self, event: AuditEvent) -> None:
        self.events.append(event)


@dataclass
class FakeNutritionEstimator(NutritionEstimator):
    """Fake estimator returning a canned reply or raising."""

    payload: dict[str, object] = field(
        default_factory=lambda: {
            "calories": 420.0,
            "protein_g": 12.0,
            "carbs_g": 60.0,
            "fat_g": 14.0,
            "notes": None,
        }
    )
    error: Exception | None = None
    prompts: list[str] = field(default_factory=list)

    async def estimate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        api_token="api-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def scope(user_id: UUID) -> OwnerScope:
    return OwnerScope(user_id=user_id)


@pytest.fixture
def household_scope(user_id: UUID) -> OwnerScope:
    return OwnerScope(
        user_id=user_id,
        household_id=uuid4(),
        household_member_ids=frozenset({user_id}),
    )


@pytest.fixture
def inventory_repository() -> InMemoryInventoryRepository:
    return InMemoryInventoryRepository()


@pytest.fixture
def audit_repository() -> InMemoryAuditRepository:
    return InMemoryAuditRepository()


@pytest.fixture
def household_repository() -> InMemoryHouseholdRepository:
    return InMemoryHouseholdRepository()


@pytest.fixture
def location_service() -> LocationService:
    return LocationService(InMemoryLocationRepository())


@pytest.fixture
def inventory_service(
    inventory_repository: InMemoryInventoryRepository,
    location_service: LocationService,
    audit_repository: InMemoryAuditRepository,
) -> InventoryService:
    return InventoryService(
        repository=inventory_repository,
        location_service=location_service,
        audit_service=AuditService(audit_repository),
    )


@pytest.fixture
def nutrition_estimator() -> FakeNutritionEstimator:
    return FakeNutritionEstimator()


@pytest.fixture
def cooking_service(
    inventory_service: InventoryService,
    location_service: LocationService,
    nutrition_estimator: FakeNutritionEstimator,
) -> CookingService:
    return CookingService(
        inventory_service=inventory_service,
        location_service=location_service,
        nutrition_service=NutritionService(
            client=nutrition_estimator,
            model="gpt-5.2",
            reasoning_effort="medium",
            store=False,
        ),
        rate_limiter=InMemoryRateLimiter(max_requests=10, window_seconds=60),
    )


@pytest.fixture
def container(
    settings: Settings,
    household_repository: InMemoryHouseholdRepository,
    location_service: LocationService,
    inventory_service: InventoryService,
    cooking_service: CookingService,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        household_service=HouseholdService(household_repository),
        location_service=location_service,
        inventory_service=inventory_service,
        cooking_service=cooking_service,
        user_settings_service=UserSettingsService(InMemoryUserSettingsRepository()),
        close_resources=close_resources,
    )

