"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from kitchen_inventory.adapters.openai_nutrition_client import OpenAINutritionClient
from kitchen_inventory.adapters.supabase_audit_repository import (
    SupabaseAuditRepository,
)
from kitchen_inventory.adapters.supabase_household_repository import (
    SupabaseHouseholdRepository,
)
from kitchen_inventory.adapters.supabase_inventory_repository import (
    SupabaseInventoryRepository,
)
from kitchen_inventory.adapters.supabase_location_repository import (
    SupabaseLocationRepository,
)
from kitchen_inventory.adapters.supabase_user_settings_repository import (
    SupabaseUserSettingsRepository,
)
from kitchen_inventory.config import Settings
from kitchen_inventory.services.audit import AuditService
from kitchen_inventory.services.cooking import CookingService
from kitchen_inventory.services.households import HouseholdService
from kitchen_inventory.services.inventory import InventoryService
from kitchen_inventory.services.locations import LocationService
from kitchen_inventory.services.nutrition import NutritionService
from kitchen_inventory.services.rate_limit import InMemoryRateLimiter
from kitchen_inventory.services.user_settings import UserSettingsService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    household_service: HouseholdService
    location_service: LocationService
    inventory_service: InventoryService
    cooking_service: CookingService
    user_settings_service: UserSettingsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    location_service = LocationService(SupabaseLocationRepository(supabase_client))
    inventory_service = InventoryService(
        repository=SupabaseInventoryRepository(supabase_client),
        location_service=location_service,
        audit_service=AuditService(SupabaseAuditRepository(supabase_client)),
        thaw_days=resolved_settings.thaw_days,
    )
    openai_client = OpenAINutritionClient.create(resolved_settings.openai_api_key)
    nutrition_service = NutritionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    cooking_service = CookingService(
        inventory_service=inventory_service,
        location_service=location_service,
        nutrition_service=nutrition_service,
        rate_limiter=InMemoryRateLimiter(
            max_requests=resolved_settings.ai_rate_limit_requests,
            window_seconds=resolved_settings.ai_rate_limit_window_seconds,
        ),
        fridge_days=resolved_settings.leftover_fridge_days,
        freezer_days=resolved_settings.leftover_freezer_days,
    )
    user_settings_service = UserSettingsService(
        SupabaseUserSettingsRepository(supabase_client),
        default_unit_system=resolved_settings.default_unit_system,
    )

    async def close_resources() -> None:
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        household_service=HouseholdService(
            SupabaseHouseholdRepository(supabase_client)
        ),
        location_service=location_service,
        inventory_service=inventory_service,
        cooking_service=cooking_service,
        user_settings_service=user_settings_service,
        close_resources=close_resources,
    )
