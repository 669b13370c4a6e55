"""Tests for the cooking service."""

import asyncio
from datetime import date, timedelta

import pytest

from kitchen_inventory.domain.consumption import Recipe
from kitchen_inventory.domain.errors import RateLimitExceededError
from kitchen_inventory.domain.packages import OwnerScope
from kitchen_inventory.domain.units import Unit
from kitchen_inventory.services.cooking import CookingService, LeftoverRequest
from kitchen_inventory.services.rate_limit import InMemoryRateLimiter
from tests.conftest import (
    FREEZER,
    FRIDGE,
    FakeNutritionEstimator,
    InMemoryAuditRepository,
    InMemoryInventoryRepository,
    make_package,
)

TODAY = date(2026, 3, 10)
PANCAKES = Recipe(title="Pancakes", servings=4, ingredients=("2 cups flour",))


def test_cook_deducts_whole_recipe_and_stores_leftovers(
    cooking_service: CookingService,
    inventory_repository: InMemoryInventoryRepository,
    audit_repository: InMemoryAuditRepository,
    scope: OwnerScope,
) -> None:
    flour = make_package("Flour", 5, unit=Unit.CUP, owner_id=scope.user_id)
    inventory_repository.add(flour)

    result = asyncio.run(
        cooking_service.cook(
            scope,
            PANCAKES,
            servings_eaten=1,
            total_servings=4,
            leftovers=[LeftoverRequest(location_id=FRIDGE.id, servings=3)],
            today=TODAY,
        )
    )

    assert inventory_repository.packages[flour.id].total_quantity == 3
    leftovers = [
        p for p in inventory_repository.packages.values() if p.unit is Unit.PCS
    ]
    assert len(leftovers) == 1
    assert leftovers[0].total_quantity == 3
    assert leftovers[0].owner_id == scope.user_id
    assert leftovers[0].expiry_date == TODAY + timedelta(days=3)
    assert {group.key for group in result.groups} == {
        "flour|cup",
        "pancakes (leftovers)|pcs",
    }
    assert audit_repository.events[0].event_type == "cook"


def test_cook_freezer_leftovers_expire_later(
    cooking_service: CookingService,
    inventory_repository: InMemoryInventoryRepository,
    scope: OwnerScope,
) -> None:
    asyncio.run(
        cooking_service.cook(
            scope,
            PANCAKES,
            servings_eaten=0,
            total_servings=4,
            leftovers=[LeftoverRequest(location_id=FREEZER.id, servings=4)],
            today=TODAY,
        )
    )

    (leftover,) = inventory_repository.packages.values()
    assert leftover.expiry_date == TODAY + timedelta(days=60)


def test_cook_with_estimate_annotates_leftovers(
    cooking_service: CookingService,
    inventory_repository: InMemoryInventoryRepository,
    nutrition_estimator: FakeNutritionEstimator,
    scope: OwnerScope,
) -> None:
    result = asyncio.run(
        cooking_service.cook(
            scope,
            PANCAKES,
            servings_eaten=2,
            total_servings=4,
            leftovers=[LeftoverRequest(location_id=FRIDGE.id, servings=2)],
            estimate_nutrition=True,
            today=TODAY,
        )
    )

    assert result.nutrition is not None
    assert result.nutrition.calories == 420.0
    (leftover,) = inventory_repository.packages.values()
    assert leftover.serving_macros is not None
    assert leftover.serving_macros.calories == 420.0
    assert "Pancakes" in nutrition_estimator.prompts[0]


def test_failed_estimate_does_not_block_cooking(
    cooking_service: CookingService,
    inventory_repository: InMemoryInventoryRepository,
    nutrition_estimator: FakeNutritionEstimator,
    scope: OwnerScope,
) -> None:
    nutrition_estimator.error = RuntimeError("upstream down")
    inventory_repository.add(
        make_package("Flour", 5, unit=Unit.CUP, owner_id=scope.user_id)
    )

    result = asyncio.run(
        cooking_service.cook(
            scope, PANCAKES, 4, 4, estimate_nutrition=True, today=TODAY
        )
    )

    assert result.nutrition is None
    assert result.estimation_error == "Could not estimate Pancakes"
    assert result.consumption.consumed[0].quantity.amount == 2


def test_rate_limited_estimate_changes_nothing(
    cooking_service: CookingService,
    inventory_repository: InMemoryInventoryRepository,
    scope: OwnerScope,
) -> None:
    cooking_service.rate_limiter = InMemoryRateLimiter(
        max_requests=0, window_seconds=60
    )
    flour = make_package("Flour", 5, unit=Unit.CUP, owner_id=scope.user_id)
    inventory_repository.add(flour)

    with pytest.raises(RateLimitExceededError):
        asyncio.run(
            cooking_service.cook(
                scope, PANCAKES, 4, 4, estimate_nutrition=True, today=TODAY
            )
        )

    assert inventory_repository.packages[flour.id].total_quantity == 5
