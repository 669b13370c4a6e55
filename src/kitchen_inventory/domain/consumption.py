"""Deducting eaten and cooked quantities from inventory.

Single items are drawn first-expire-first-out across the package sizes of a
group. Recipes draw the whole cooked amount of every ingredient that can be
matched to a group; what cannot be matched or covered is reported instead of
blocking the cook, since kitchens hold plenty that is never tracked.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Protocol

from kitchen_inventory.domain.errors import (
    IncompatibleUnitError,
    InvalidRequestError,
)
from kitchen_inventory.domain.grouping import (
    InventoryGroup,
    PackageSizeBucket,
    find_group,
    group_packages,
)
from kitchen_inventory.domain.packages import PackageRecord, ServingMacros
from kitchen_inventory.domain.transfers import (
    PackageUpdate,
    TransferDiff,
    TransferRequest,
    apply_diff,
    diff_between,
    plan_transfer,
)
from kitchen_inventory.domain.units import (
    EPSILON,
    Quantity,
    Unit,
    convert,
    is_zero,
    normalize,
    parse_unit,
)

FRIDGE_LEFTOVER_DAYS = 3
FREEZER_LEFTOVER_DAYS = 60

_FRACTIONS = {
    "¼": 0.25,
    "½": 0.5,
    "¾": 0.75,
    "⅓": 1 / 3,
    "⅔": 2 / 3,
    "⅕": 0.2,
    "⅖": 0.4,
    "⅗": 0.6,
    "⅘": 0.8,
    "⅙": 1 / 6,
    "⅚": 5 / 6,
    "⅛": 0.125,
    "⅜": 0.375,
    "⅝": 0.625,
    "⅞": 0.875,
}

_INGREDIENT_RE = re.compile(
    r"^(?P<quantity>[\d\s./" + "".join(_FRACTIONS) + r"]+)?\s*"
    r"(?:(?P<unit>fl\.?\s?oz|tablespoons?|teaspoons?|tbsp|tsp|cups?|gallons?|"
    r"pounds?|ounces?|lbs?|oz|kg|grams?|g|ml|l|pcs|pieces?)\b\.?)?\s*"
    r"(?:of\s+)?(?P<name>.+)$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class IngredientLine:
    """A recipe ingredient split into amount, unit and name."""

    original: str
    quantity: float
    unit: Unit | None
    name: str


@dataclass(frozen=True)
class Recipe:
    """The parts of a recipe that matter for inventory."""

    title: str
    servings: int
    ingredients: tuple[str, ...]
    macros: ServingMacros | None = None


@dataclass(frozen=True)
class LeftoverDestination:
    """Where leftover servings of a cooked recipe are stored."""

    location_id: str
    servings: float
    frozen: bool = False
    is_private: bool = False


@dataclass(frozen=True)
class ConsumedIngredient:
    """An ingredient deducted from a group."""

    ingredient: str
    group_key: str
    quantity: Quantity


@dataclass(frozen=True)
class Shortfall:
    """An ingredient that could not be fully deducted."""

    ingredient: str
    group_key: str
    requested: float
    deducted: float
    unit: Unit
    reason: str


@dataclass(frozen=True)
class RecipeConsumption:
    """Outcome of cooking a recipe against the inventory."""

    diff: TransferDiff
    consumed: tuple[ConsumedIngredient, ...] = field(default_factory=tuple)
    shortfalls: tuple[Shortfall, ...] = field(default_factory=tuple)
    unmatched: tuple[str, ...] = field(default_factory=tuple)
    leftovers: tuple[PackageRecord, ...] = field(default_factory=tuple)


class IngredientMatcher(Protocol):
    """Chooses the inventory group an ingredient line draws from."""

    def match(
        self, line: IngredientLine, groups: Sequence[InventoryGroup]
    ) -> InventoryGroup | None:
        """Return the matching group, or None when nothing fits."""


@dataclass(frozen=True)
class SubstringMatcher(IngredientMatcher):
    """Case-insensitive equality, then containment in either direction.

    This is a best-effort heuristic. Among equally good candidates, groups
    whose unit can hold the ingredient amount win, then the soonest expiring.
    """

    def match(
        self, line: IngredientLine, groups: Sequence[InventoryGroup]
    ) -> InventoryGroup | None:
        """Return the best matching group for the ingredient."""
        wanted = _normalize_name(line.name)
        if not wanted:
            return None
        exact = [group for group in groups if _group_name(group) == wanted]
        partial = [
            group
            for group in groups
            if group not in exact
            and (_group_name(group) in wanted or wanted in _group_name(group))
        ]
        for candidates in (exact, partial):
            if candidates:
                return _prefer_compatible(line, candidates)
        return None


def parse_ingredient(text: str) -> IngredientLine:
    """Parse lines such as ``1 1/2 cups flour`` or ``2 eggs``."""
    cleaned = " ".join(text.strip().split())
    match = _INGREDIENT_RE.match(cleaned)
    if not match:
        return IngredientLine(original=text, quantity=1.0, unit=None, name=cleaned)
    quantity = _parse_amount(match.group("quantity") or "")
    unit_text = match.group("unit")
    unit = parse_unit(unit_text.replace(".", " ")) if unit_text else None
    return IngredientLine(
        original=text,
        quantity=quantity if quantity > 0 else 1.0,
        unit=unit,
        name=match.group("name").strip(),
    )


def consume(requests: Iterable[tuple[InventoryGroup, Quantity]]) -> TransferDiff:
    """Plan eating the requested quantities, soonest expiry first."""
    pairs = list(requests)
    packages = _unique_packages(group for group, _ in pairs)
    working = list(packages)
    for group, requested in pairs:
        current = find_group(group_packages(working), group.key)
        amount = convert(requested, group.unit).amount
        available = current.total_quantity if current else 0.0
        if is_zero(amount):
            raise InvalidRequestError(f"Nothing to eat from {group.item_name}")
        if amount > available + EPSILON:
            raise InvalidRequestError(
                f"Cannot eat {amount:g} {group.unit.value} of {group.item_name}, "
                f"only {available:g} {group.unit.value} available"
            )
        working = apply_diff(working, plan_group_consumption(current, amount))
    return diff_between(packages, working)


def plan_group_consumption(group: InventoryGroup, amount: float) -> TransferDiff:
    """Plan taking ``amount`` (in the group unit) across buckets, FEFO."""
    needed = normalize(amount)
    diff = TransferDiff()
    for bucket in sorted(group.buckets, key=_bucket_order):
        if is_zero(needed):
            break
        taken = min(needed, bucket.total_quantity)
        if is_zero(taken):
            continue
        diff = diff.merge(_plan_bucket_consumption(bucket, taken))
        needed = normalize(needed - taken)
    if not is_zero(needed):
        raise InvalidRequestError(
            f"{group.item_name} is short by {needed:g} {group.unit.value}"
        )
    return diff


def consume_for_recipe(  # noqa: PLR0913
    recipe: Recipe,
    servings_eaten: float,
    total_servings: int,
    inventory: Sequence[PackageRecord],
    leftovers: Sequence[LeftoverDestination] = (),
    *,
    servings_eaten_by_others: float = 0.0,
    matcher: IngredientMatcher | None = None,
    today: date | None = None,
    fridge_days: int = FRIDGE_LEFTOVER_DAYS,
    freezer_days: int = FREEZER_LEFTOVER_DAYS,
) -> RecipeConsumption:
    """Deduct a fully cooked recipe and store its leftovers."""
    if total_servings <= 0:
        raise InvalidRequestError("A recipe needs at least one serving")
    leftover_servings = normalize(sum(dest.servings for dest in leftovers))
    if servings_eaten < 0 or servings_eaten_by_others < 0 or any(
        dest.servings < 0 for dest in leftovers
    ):
        raise InvalidRequestError("Servings cannot be negative")
    accounted = normalize(servings_eaten + servings_eaten_by_others + leftover_servings)
    if accounted > total_servings + EPSILON:
        raise InvalidRequestError(
            f"{accounted:g} servings accounted for, but only {total_servings} cooked"
        )

    resolver = matcher or SubstringMatcher()
    working = list(inventory)
    consumed: list[ConsumedIngredient] = []
    shortfalls: list[Shortfall] = []
    unmatched: list[str] = []
    for text in recipe.ingredients:
        line = parse_ingredient(text)
        groups = group_packages(working)
        group = resolver.match(line, groups)
        if group is None:
            unmatched.append(text)
            continue
        per_serving = line.quantity / _recipe_servings(recipe, total_servings)
        requested = normalize(per_serving * total_servings)
        try:
            amount = convert(
                Quantity(requested, line.unit or Unit.PCS), group.unit
            ).amount
        except IncompatibleUnitError:
            shortfalls.append(
                Shortfall(
                    ingredient=text,
                    group_key=group.key,
                    requested=requested,
                    deducted=0.0,
                    unit=line.unit or Unit.PCS,
                    reason="incompatible unit",
                )
            )
            continue
        deducted = min(amount, group.total_quantity)
        if deducted < amount - EPSILON:
            shortfalls.append(
                Shortfall(
                    ingredient=text,
                    group_key=group.key,
                    requested=amount,
                    deducted=deducted,
                    unit=group.unit,
                    reason="not enough in inventory",
                )
            )
        if is_zero(deducted):
            continue
        working = apply_diff(working, plan_group_consumption(group, deducted))
        consumed.append(
            ConsumedIngredient(
                ingredient=text,
                group_key=group.key,
                quantity=Quantity(deducted, group.unit),
            )
        )

    stored = tuple(
        _leftover_package(
            recipe, dest, today or date.today(), fridge_days, freezer_days
        )
        for dest in leftovers
        if not is_zero(dest.servings)
    )
    diff = diff_between(inventory, working)
    return RecipeConsumption(
        diff=TransferDiff(
            updates=diff.updates,
            removals=diff.removals,
            insertions=diff.insertions + stored,
        ),
        consumed=tuple(consumed),
        shortfalls=tuple(shortfalls),
        unmatched=tuple(unmatched),
        leftovers=stored,
    )


def _recipe_servings(recipe: Recipe, total_servings: int) -> int:
    """Return the servings the ingredient amounts are written for."""
    return recipe.servings if recipe.servings > 0 else total_servings


def _plan_bucket_consumption(bucket: PackageSizeBucket, amount: float) -> TransferDiff:
    """Use opened packages first, then whole packages, then open one more."""
    from_partials = min(amount, bucket.partial_total)
    rest = normalize(amount - from_partials)
    size = bucket.original_quantity
    whole = int(rest / size + EPSILON)
    opened = normalize(rest - whole * size)
    diff = TransferDiff()
    if whole or not is_zero(from_partials):
        diff = plan_transfer(
            bucket,
            TransferRequest.consume(full_packages=whole, partial_amount=from_partials),
        )
    if not is_zero(opened):
        package = bucket.full_packages[whole]
        diff = diff.merge(
            TransferDiff(
                updates=(
                    PackageUpdate.of(
                        package,
                        total_quantity=normalize(package.total_quantity - opened),
                    ),
                )
            )
        )
    return diff


def _leftover_package(
    recipe: Recipe,
    destination: LeftoverDestination,
    today: date,
    fridge_days: int,
    freezer_days: int,
) -> PackageRecord:
    days = freezer_days if destination.frozen else fridge_days
    return PackageRecord.create(
        item_name=f"{recipe.title} (leftovers)",
        original_quantity=destination.servings,
        unit=Unit.PCS,
        location_id=destination.location_id,
        expiry_date=today + timedelta(days=days),
        is_private=destination.is_private,
        serving_macros=recipe.macros,
        serving_size="1 serving",
    )


def _parse_amount(text: str) -> float:
    total = 0.0
    for token in text.split():
        total += _parse_token(token)
    return normalize(total)


def _parse_token(token: str) -> float:
    if token in _FRACTIONS:
        return _FRACTIONS[token]
    if token[-1] in _FRACTIONS:
        return _parse_token(token[:-1]) + _FRACTIONS[token[-1]]
    if "/" in token:
        numerator, _, denominator = token.partition("/")
        try:
            return float(numerator) / float(denominator)
        except (ValueError, ZeroDivisionError):
            return 0.0
    try:
        return float(token)
    except ValueError:
        return 0.0


def _bucket_order(bucket: PackageSizeBucket) -> tuple[bool, date, float]:
    return (
        bucket.next_expiry is None,
        bucket.next_expiry or date.max,
        bucket.original_quantity,
    )


def _unique_packages(groups: Iterable[InventoryGroup]) -> list[PackageRecord]:
    seen: dict[object, PackageRecord] = {}
    for group in groups:
        for package in group.packages:
            seen.setdefault(package.id, package)
    return list(seen.values())


def _prefer_compatible(
    line: IngredientLine, candidates: list[InventoryGroup]
) -> InventoryGroup:
    unit = line.unit or Unit.PCS
    for group in candidates:
        if group.unit.family is unit.family:
            return group
    return candidates[0]


def _normalize_name(name: str) -> str:
    return " ".join(name.casefold().replace(",", " ").split())


def _group_name(group: InventoryGroup) -> str:
    return _normalize_name(group.item_name)
