"""Cooking recipes against the inventory."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date

from kitchen_inventory.domain.consumption import (
    FREEZER_LEFTOVER_DAYS,
    FRIDGE_LEFTOVER_DAYS,
    LeftoverDestination,
    Recipe,
    RecipeConsumption,
    consume_for_recipe,
)
from kitchen_inventory.domain.errors import EstimationError, RateLimitExceededError
from kitchen_inventory.domain.grouping import InventoryGroup
from kitchen_inventory.domain.nutrition import NutritionFacts
from kitchen_inventory.domain.packages import (
    LocationType,
    OwnerScope,
    PackageRecord,
    ServingMacros,
)
from kitchen_inventory.domain.transfers import TransferDiff
from kitchen_inventory.services.inventory import InventoryService
from kitchen_inventory.services.locations import LocationService
from kitchen_inventory.services.nutrition import NutritionService
from kitchen_inventory.services.rate_limit import RateLimiter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeftoverRequest:
    """Servings of a cooked dish to store in a location."""

    location_id: str
    servings: float
    is_private: bool = False


@dataclass(frozen=True)
class CookResult:
    """What cooking changed, with the regrouped inventory."""

    consumption: RecipeConsumption
    groups: list[InventoryGroup]
    nutrition: NutritionFacts | None = None
    estimation_error: str | None = None


@dataclass
class CookingService:
    """Deducts cooked recipes and stores their leftovers."""

    inventory_service: InventoryService
    location_service: LocationService
    nutrition_service: NutritionService | None = None
    rate_limiter: RateLimiter | None = None
    fridge_days: int = FRIDGE_LEFTOVER_DAYS
    freezer_days: int = FREEZER_LEFTOVER_DAYS

    async def cook(  # noqa: PLR0913
        self,
        scope: OwnerScope,
        recipe: Recipe,
        servings_eaten: float,
        total_servings: int,
        leftovers: Sequence[LeftoverRequest] = (),
        *,
        servings_eaten_by_others: float = 0.0,
        estimate_nutrition: bool = False,
        today: date | None = None,
    ) -> CookResult:
        """Deduct every matched ingredient and store leftover servings.

        Estimating macros is optional and never blocks the cook: a failed
        estimate is reported on the result and the leftovers are stored
        without macros.
        """
        destinations = [self._destination(scope, request) for request in leftovers]
        nutrition: NutritionFacts | None = None
        estimation_error: str | None = None
        if estimate_nutrition and recipe.macros is None:
            nutrition, estimation_error = await self._estimate(scope, recipe)
            if nutrition is not None:
                recipe = replace(
                    recipe,
                    macros=ServingMacros(
                        calories=nutrition.calories,
                        protein_g=nutrition.protein_g,
                        carbs_g=nutrition.carbs_g,
                        fat_g=nutrition.fat_g,
                    ),
                )

        outcome: list[RecipeConsumption] = []

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            consumption = consume_for_recipe(
                recipe,
                servings_eaten,
                total_servings,
                packages,
                destinations,
                servings_eaten_by_others=servings_eaten_by_others,
                today=today,
                fridge_days=self.fridge_days,
                freezer_days=self.freezer_days,
            )
            outcome[:] = [consumption]
            return consumption.diff

        self.inventory_service.execute(
            scope, planner, event_type="cook", entity_id=recipe.title
        )
        if outcome[0].unmatched:
            logger.info(
                "Cooked %s without tracked stock for: %s",
                recipe.title,
                ", ".join(outcome[0].unmatched),
            )
        return CookResult(
            consumption=outcome[0],
            groups=self.inventory_service.list_groups(scope),
            nutrition=nutrition,
            estimation_error=estimation_error,
        )

    def _destination(
        self, scope: OwnerScope, request: LeftoverRequest
    ) -> LeftoverDestination:
        location = self.location_service.get_location(scope, request.location_id)
        return LeftoverDestination(
            location_id=location.id,
            servings=request.servings,
            frozen=location.type is LocationType.FREEZER,
            is_private=request.is_private and scope.is_in_household,
        )

    async def _estimate(
        self, scope: OwnerScope, recipe: Recipe
    ) -> tuple[NutritionFacts | None, str | None]:
        if self.nutrition_service is None:
            return None, "Nutrition estimation is not configured"
        if self.rate_limiter is not None and not self.rate_limiter.try_acquire(
            scope.user_id
        ):
            raise RateLimitExceededError("Too many estimate requests, try again later")
        try:
            return await self.nutrition_service.estimate_recipe(recipe), None
        except EstimationError as exc:
            return None, str(exc)
