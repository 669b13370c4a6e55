"""Tests for the OpenAI nutrition client."""

import asyncio
import json
from types import SimpleNamespace

import pytest

from kitchen_inventory.adapters.openai_nutrition_client import (
    DEFAULT_INSTRUCTIONS,
    OpenAINutritionClient,
)


class _FakeResponses:
    def __init__(self, output_text: str, **extra: object) -> None:
        self.output_text = output_text
        self.extra = extra
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return SimpleNamespace(output_text=self.output_text, **self.extra)


class _FakeOpenAI:
    def __init__(self, output_text: str, **extra: object) -> None:
        self.responses = _FakeResponses(output_text, **extra)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def _estimate(client: OpenAINutritionClient, **overrides: object) -> dict:
    arguments: dict[str, object] = {
        "model": "gpt-5.2",
        "reasoning_effort": None,
        "store": False,
        "schema": {"type": "object"},
        "prompt": "Estimate soup",
    }
    arguments.update(overrides)
    return asyncio.run(client.estimate(**arguments))


def test_openai_nutrition_client_parses_output() -> None:
    fake = _FakeOpenAI(json.dumps({"calories": 350, "notes": None}))
    client = OpenAINutritionClient(client=fake)

    result = _estimate(client, reasoning_effort="medium")

    assert result == {"calories": 350, "notes": None}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["reasoning"] == {"effort": "medium"}
    assert payload["text"]["format"]["strict"] is True
    assert payload["text"]["format"]["name"] == "nutrition_estimate"
    assert payload["instructions"] == DEFAULT_INSTRUCTIONS
    assert payload["input"] == "Estimate soup"


def test_openai_nutrition_client_omits_unset_options() -> None:
    fake = _FakeOpenAI(json.dumps({}))
    client = OpenAINutritionClient(client=fake)

    _estimate(client, store=True)
    asyncio.run(client.close())

    assert "reasoning" not in fake.responses.last_payload
    assert "max_output_tokens" not in fake.responses.last_payload
    assert fake.responses.last_payload["store"] is True
    assert fake.closed


def test_openai_nutrition_client_passes_token_cap() -> None:
    fake = _FakeOpenAI(json.dumps({}))
    client = OpenAINutritionClient(client=fake, max_output_tokens=800)

    _estimate(client)

    assert fake.responses.last_payload["max_output_tokens"] == 800


@pytest.mark.parametrize(
    ("output_text", "extra", "message"),
    [
        ("", {}, "empty response"),
        ("{not json", {}, "malformed JSON"),
        ("[1, 2]", {}, "non-object"),
        (
            "",
            {
                "status": "incomplete",
                "incomplete_details": SimpleNamespace(reason="max_output_tokens"),
            },
            "max_output_tokens",
        ),
    ],
)
def test_openai_nutrition_client_rejects_unusable_output(
    output_text: str, extra: dict[str, object], message: str
) -> None:
    client = OpenAINutritionClient(client=_FakeOpenAI(output_text, **extra))

    with pytest.raises(RuntimeError, match=message):
        _estimate(client)
