"""OpenAI Responses API client for per-serving nutrition estimates."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from kitchen_inventory.services.nutrition import NutritionEstimator

DEFAULT_INSTRUCTIONS = (
    "You estimate the nutrition of home-cooked dishes. Use typical values for "
    "the listed ingredients and amounts, divide the whole dish by its number "
    "of servings and answer for a single serving. Mention assumptions you had "
    "to make in notes."
)


@dataclass
class OpenAINutritionClient(NutritionEstimator):
    """Nutrition estimator backed by the OpenAI Responses API."""

    client: AsyncOpenAI
    instructions: str = DEFAULT_INSTRUCTIONS
    max_output_tokens: int | None = None

    @classmethod
    def create(cls, api_key: str) -> "OpenAINutritionClient":
        """Create an OpenAI nutrition client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def estimate(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Ask for per-serving macros as structured output."""
        options: dict[str, object] = {}
        if reasoning_effort:
            options["reasoning"] = {"effort": reasoning_effort}
        if self.max_output_tokens:
            options["max_output_tokens"] = self.max_output_tokens

        response = await self.client.responses.create(
            model=model,
            instructions=self.instructions,
            input=prompt,
            text={
                "format": {
                    "type": "json_schema",
                    "name": "nutrition_estimate",
                    "strict": True,
                    "schema": schema,
                }
            },
            store=store,
            **options,
        )
        return _parse_estimate(response)


def _parse_estimate(response: object) -> dict[str, object]:
    if getattr(response, "status", None) == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) or "unknown reason"
        raise RuntimeError(f"OpenAI stopped before finishing the estimate: {reason}")
    output_text = getattr(response, "output_text", "")
    if not output_text:
        raise RuntimeError("OpenAI returned an empty response")
    try:
        estimate = json.loads(output_text)
    except json.JSONDecodeError as exc:
        raise RuntimeError("OpenAI returned malformed JSON") from exc
    if not isinstance(estimate, dict):
        raise RuntimeError("OpenAI returned a non-object estimate")
    return estimate
