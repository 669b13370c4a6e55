"""Tests for eating and cooking against the inventory."""

from datetime import date, timedelta

import pytest

from kitchen_inventory.domain.consumption import (
    LeftoverDestination,
    Recipe,
    consume,
    consume_for_recipe,
    parse_ingredient,
    plan_group_consumption,
)
from kitchen_inventory.domain.errors import InvalidRequestError
from kitchen_inventory.domain.grouping import group_packages
from kitchen_inventory.domain.packages import PackageRecord, ServingMacros
from kitchen_inventory.domain.transfers import apply_diff
from kitchen_inventory.domain.units import Quantity, Unit, amounts_equal
from tests.conftest import FREEZER, FRIDGE, make_package

TODAY = date(2026, 3, 10)


def _total(packages: list[PackageRecord]) -> float:
    return round(sum(p.total_quantity for p in packages), 6)


@pytest.mark.parametrize(
    ("text", "quantity", "unit", "name"),
    [
        ("2 cups flour", 2.0, Unit.CUP, "flour"),
        ("1 1/2 cups of milk", 1.5, Unit.CUP, "milk"),
        ("½ tsp salt", 0.5, Unit.TSP, "salt"),
        ("3 eggs", 3.0, None, "eggs"),
        ("200 g butter", 200.0, Unit.G, "butter"),
        ("1 lemon", 1.0, None, "lemon"),
        ("Salt to taste", 1.0, None, "Salt to taste"),
    ],
)
def test_parse_ingredient(
    text: str, quantity: float, unit: Unit | None, name: str
) -> None:
    line = parse_ingredient(text)

    assert line.quantity == quantity
    assert line.unit is unit
    assert line.name == name


def test_eat_draws_soonest_expiring_size_first() -> None:
    early = make_package("Yogurt", 150, expiry_date=date(2026, 3, 12))
    late = make_package("Yogurt", 500, expiry_date=date(2026, 3, 20))
    group = group_packages([early, late])[0]

    diff = plan_group_consumption(group, 200)
    after = apply_diff([early, late], diff)

    assert [r.package_id for r in diff.removals] == [early.id]
    assert [(p.id, p.total_quantity) for p in after] == [(late.id, 450)]


def test_eat_uses_opened_packages_before_full_ones() -> None:
    full = make_package("Rice", 500)
    opened = make_package("Rice", 500, total_quantity=80)
    group = group_packages([full, opened])[0]

    diff = plan_group_consumption(group, 100)

    assert [r.package_id for r in diff.removals] == [opened.id]
    assert [(u.package_id, u.total_quantity) for u in diff.updates] == [
        (full.id, 480)
    ]


def test_consume_converts_units_and_rejects_excess() -> None:
    milk = make_package("Milk", 1, unit=Unit.L)
    group = group_packages([milk])[0]

    diff = consume([(group, Quantity(250, Unit.ML))])

    assert diff.updates[0].total_quantity == 0.75
    with pytest.raises(InvalidRequestError):
        consume([(group, Quantity(2, Unit.L))])
    with pytest.raises(InvalidRequestError):
        consume([(group, Quantity(0, Unit.L))])


def test_recipe_deducts_full_amount_and_stores_fridge_leftovers() -> None:
    flour = make_package("Flour", 5, unit=Unit.CUP)
    recipe = Recipe(title="Pancakes", servings=4, ingredients=("2 cups flour",))

    result = consume_for_recipe(
        recipe,
        servings_eaten=1,
        total_servings=4,
        inventory=[flour],
        leftovers=[LeftoverDestination(location_id=FRIDGE.id, servings=3)],
        today=TODAY,
    )
    after = apply_diff([flour], result.diff)

    assert result.consumed[0].quantity == Quantity(2, Unit.CUP)
    flour_after = next(p for p in after if p.id == flour.id)
    assert flour_after.total_quantity == 3
    assert len(result.leftovers) == 1
    leftover = result.leftovers[0]
    assert leftover.original_quantity == leftover.total_quantity == 3
    assert leftover.unit is Unit.PCS
    assert leftover.location_id == FRIDGE.id
    assert leftover.expiry_date == TODAY + timedelta(days=3)
    assert leftover.item_name == "Pancakes (leftovers)"


def test_recipe_leftovers_in_freezer_keep_longer_and_carry_macros() -> None:
    macros = ServingMacros(calories=300, protein_g=10, carbs_g=40, fat_g=9)
    recipe = Recipe(title="Chili", servings=6, ingredients=(), macros=macros)

    result = consume_for_recipe(
        recipe,
        servings_eaten=2,
        total_servings=6,
        inventory=[],
        leftovers=[
            LeftoverDestination(location_id=FREEZER.id, servings=4, frozen=True)
        ],
        today=TODAY,
    )

    leftover = result.leftovers[0]
    assert leftover.expiry_date == TODAY + timedelta(days=60)
    assert leftover.serving_macros == macros


def test_recipe_converts_within_family_and_reports_shortfalls() -> None:
    butter = make_package("Butter", 250)
    milk = make_package("Milk", 1, unit=Unit.L, total_quantity=0.2)
    eggs = make_package("Eggs", 12, unit=Unit.PCS)
    recipe = Recipe(
        title="Cake",
        servings=8,
        ingredients=(
            "100 g butter",
            "2 cups milk",
            "1 cup eggs",
            "1 tsp vanilla",
        ),
    )

    result = consume_for_recipe(recipe, 0, 8, [butter, milk, eggs], today=TODAY)
    after = apply_diff([butter, milk, eggs], result.diff)

    assert result.unmatched == ("1 tsp vanilla",)
    reasons = {s.ingredient: s.reason for s in result.shortfalls}
    assert reasons == {
        "2 cups milk": "not enough in inventory",
        "1 cup eggs": "incompatible unit",
    }
    assert next(p for p in after if p.id == butter.id).total_quantity == 150
    assert all(p.id != milk.id for p in after)
    assert next(p for p in after if p.id == eggs.id).total_quantity == 12


def test_recipe_scales_to_cooked_servings() -> None:
    flour = make_package("Flour", 1000)
    recipe = Recipe(title="Bread", servings=2, ingredients=("300 g flour",))

    result = consume_for_recipe(recipe, 4, 4, [flour], today=TODAY)

    assert amounts_equal(result.consumed[0].quantity.amount, 600)


def test_recipe_rejects_more_servings_than_cooked() -> None:
    recipe = Recipe(title="Soup", servings=4, ingredients=())

    with pytest.raises(InvalidRequestError):
        consume_for_recipe(
            recipe,
            2,
            4,
            [],
            [LeftoverDestination(location_id=FRIDGE.id, servings=2)],
            servings_eaten_by_others=1,
        )


def test_recipe_conserves_everything_it_does_not_deduct() -> None:
    flour = make_package("Flour", 5, unit=Unit.CUP)
    sugar = make_package("Sugar", 1000)
    recipe = Recipe(title="Cookies", servings=12, ingredients=("1 cup flour",))

    result = consume_for_recipe(recipe, 12, 12, [flour, sugar], today=TODAY)
    after = apply_diff([flour, sugar], result.diff)

    assert _total([flour, sugar]) - _total(after) == 1
