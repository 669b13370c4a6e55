"""Tests for container wiring."""

import asyncio

from kitchen_inventory.config import Settings
from kitchen_inventory.containers import build_container


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert container.inventory_service.thaw_days == settings.thaw_days
    assert container.cooking_service.freezer_days == 60
    assert container.cooking_service.rate_limiter is not None
    asyncio.run(container.close_resources())
