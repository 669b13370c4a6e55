"""Nutrition estimation for cooked dishes using LLMs."""

import logging
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from kitchen_inventory.domain.consumption import Recipe
from kitchen_inventory.domain.errors import EstimationError
from kitchen_inventory.domain.nutrition import NutritionFacts

NUTRITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "calories": {"type": "number", "minimum": 0},
        "protein_g": {"type": "number", "minimum": 0},
        "carbs_g": {"type": "number", "minimum": 0},
        "fat_g": {"type": "number", "minimum": 0},
        "notes": {"anyOf": [{"type": "string"}, {"type": "null"}]},
    },
    "required": ["calories", "protein_g", "carbs_g", "fat_g", "notes"],
    "additionalProperties": False,
}

_logger = logging.getLogger(__name__)


class NutritionEstimator(Protocol):
    """Interface for LLM nutrition estimation."""

    async def estimate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured nutrition data."""


@dataclass
class NutritionService:
    """Service that prompts for per-serving macros and validates the reply."""

    client: NutritionEstimator
    model: str
    reasoning_effort: str | None
    store: bool

    async def estimate_recipe(self, recipe: Recipe) -> NutritionFacts:
        """Estimate macros for one serving of a recipe."""
        prompt = _recipe_prompt(recipe)
        try:
            raw = await self.client.estimate(
                model=self.model,
                reasoning_effort=self.reasoning_effort,
                store=self.store,
                schema=NUTRITION_SCHEMA,
                prompt=prompt,
            )
        except Exception as exc:
            _logger.warning("Nutrition estimate failed for %s: %s", recipe.title, exc)
            raise EstimationError(f"Could not estimate {recipe.title}") from exc
        try:
            return NutritionFacts.model_validate(raw)
        except ValidationError as exc:
            raise EstimationError(f"Invalid estimate for {recipe.title}") from exc


def _recipe_prompt(recipe: Recipe) -> str:
    ingredients = "\n".join(f"- {line}" for line in recipe.ingredients)
    return (
        f"Estimate the nutrition of one serving of '{recipe.title}', "
        f"a recipe that makes {recipe.servings} servings.\n"
        f"Ingredients:\n{ingredients}\n"
        "Return calories and grams of protein, carbs and fat per serving."
    )
