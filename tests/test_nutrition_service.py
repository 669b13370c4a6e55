"""Tests for the nutrition estimation service."""

import asyncio

import pytest

from kitchen_inventory.domain.consumption import Recipe
from kitchen_inventory.domain.errors import EstimationError
from kitchen_inventory.services.nutrition import NUTRITION_SCHEMA, NutritionService
from tests.conftest import FakeNutritionEstimator

RECIPE = Recipe(
    title="Lentil soup",
    servings=4,
    ingredients=("200 g lentils", "1 onion", "1 l stock"),
)


def _service(estimator: FakeNutritionEstimator) -> NutritionService:
    return NutritionService(
        client=estimator, model="gpt-5.2", reasoning_effort="medium", store=False
    )


def test_estimate_recipe_validates_reply() -> None:
    estimator = FakeNutritionEstimator()

    facts = asyncio.run(_service(estimator).estimate_recipe(RECIPE))

    assert facts.protein_g == 12.0
    assert "- 200 g lentils" in estimator.prompts[0]
    assert "4 servings" in estimator.prompts[0]
    assert NUTRITION_SCHEMA["required"] == [
        "calories",
        "protein_g",
        "carbs_g",
        "fat_g",
        "notes",
    ]


def test_invalid_reply_raises_estimation_error() -> None:
    estimator = FakeNutritionEstimator(
        payload={"calories": -5, "protein_g": 1, "carbs_g": 1, "fat_g": 1}
    )

    with pytest.raises(EstimationError):
        asyncio.run(_service(estimator).estimate_recipe(RECIPE))


def test_client_failure_raises_estimation_error() -> None:
    estimator = FakeNutritionEstimator(error=TimeoutError("slow"))

    with pytest.raises(EstimationError, match="Lentil soup"):
        asyncio.run(_service(estimator).estimate_recipe(RECIPE))
