"""Models for nutrition estimates returned by the language model."""

from pydantic import BaseModel, Field


class NutritionFacts(BaseModel):
    """Estimated macros for one serving of a dish."""

    calories: float = Field(ge=0.0)
    protein_g: float = Field(ge=0.0)
    carbs_g: float = Field(ge=0.0)
    fat_g: float = Field(ge=0.0)
    notes: str | None = None
