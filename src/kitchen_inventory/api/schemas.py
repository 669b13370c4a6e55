"""Pydantic models for API payloads and helpers that render responses."""

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from kitchen_inventory.domain.consumption import RecipeConsumption
from kitchen_inventory.domain.grouping import (
    InventoryGroup,
    PackageSizeBucket,
    describe_group,
)
from kitchen_inventory.domain.nutrition import NutritionFacts
from kitchen_inventory.domain.packages import PackageRecord
from kitchen_inventory.services.inventory import InventoryView


class MacrosIn(BaseModel):
    """Per-serving macros supplied with a package or recipe."""

    calories: float = Field(ge=0.0)
    protein_g: float = Field(default=0.0, ge=0.0)
    carbs_g: float = Field(default=0.0, ge=0.0)
    fat_g: float = Field(default=0.0, ge=0.0)


class PackageIn(BaseModel):
    """Newly bought packages of one size."""

    item_name: str = Field(min_length=1)
    original_quantity: float = Field(gt=0.0)
    total_quantity: float | None = Field(default=None, gt=0.0)
    unit: str
    location_id: str
    count: int = Field(default=1, ge=1)
    expiry_date: date | None = None
    is_private: bool = False
    serving_size: str | None = None
    serving_macros: MacrosIn | None = None
    restock_threshold: float | None = Field(default=None, ge=0.0)


class AddPackagesRequest(BaseModel):
    """Packages to add in one request."""

    packages: list[PackageIn] = Field(min_length=1)


class TransferIn(BaseModel):
    """Full packages and a partial amount taken from one package size."""

    original_quantity: float = Field(gt=0.0)
    full_packages: int = Field(default=0, ge=0)
    partial_amount: float = Field(default=0.0, ge=0.0)


class TransferRequestBody(BaseModel):
    """A move, spoil, consume or privacy change across package sizes."""

    kind: Literal["move", "spoil", "consume", "set_privacy"]
    destination_location_id: str | None = None
    make_private: bool | None = None
    buckets: list[TransferIn] = Field(min_length=1)


class BucketTargetIn(BaseModel):
    """Target contents for one package size."""

    original_quantity: float = Field(gt=0.0)
    full_count: int = Field(ge=0)
    partial_amount: float = Field(default=0.0, ge=0.0)


class AdjustGroupRequest(BaseModel):
    """Target counts per package size, plus attributes for new packages."""

    buckets: list[BucketTargetIn] = Field(min_length=1)
    location_id: str | None = None
    expiry_date: date | None = None
    is_private: bool = False


class EatRequest(BaseModel):
    """An amount eaten from a group."""

    quantity: float = Field(gt=0.0)
    unit: str | None = None


class ThawRequest(BaseModel):
    """Frozen packages to move to the fridge."""

    package_ids: list[UUID] = Field(min_length=1)


class LeftoverIn(BaseModel):
    """Leftover servings to store."""

    location_id: str
    servings: float = Field(gt=0.0)
    is_private: bool = False


class CookRequest(BaseModel):
    """A recipe cooked in full, with how its servings were used."""

    title: str = Field(min_length=1)
    servings: int = Field(ge=1)
    ingredients: list[str] = Field(default_factory=list)
    total_servings: int | None = Field(default=None, ge=1)
    servings_eaten: float = Field(default=0.0, ge=0.0)
    servings_eaten_by_others: float = Field(default=0.0, ge=0.0)
    leftovers: list[LeftoverIn] = Field(default_factory=list)
    macros: MacrosIn | None = None
    estimate_nutrition: bool = False


class UnitSystemRequest(BaseModel):
    """A unit system preference."""

    unit_system: str


def package_payload(package: PackageRecord) -> dict[str, object]:
    """Render a package for API responses."""
    return {
        "id": str(package.id),
        "item_name": package.item_name,
        "original_quantity": package.original_quantity,
        "total_quantity": package.total_quantity,
        "unit": package.unit.value,
        "location_id": package.location_id,
        "expiry_date": package.expiry_date.isoformat() if package.expiry_date else None,
        "is_private": package.is_private,
        "owner_id": str(package.owner_id) if package.owner_id else None,
        "restock_threshold": package.restock_threshold,
    }


def bucket_payload(bucket: PackageSizeBucket) -> dict[str, object]:
    """Render a package-size bucket for API responses."""
    return {
        "original_quantity": bucket.original_quantity,
        "full_count": len(bucket.full_packages),
        "partial_packages": [
            {"id": str(package.id), "total_quantity": package.total_quantity}
            for package in bucket.partial_packages
        ],
        "partial_total": bucket.partial_total,
        "total_quantity": bucket.total_quantity,
        "next_expiry": bucket.next_expiry.isoformat() if bucket.next_expiry else None,
    }


def group_payload(group: InventoryGroup) -> dict[str, object]:
    """Render an inventory group for API responses."""
    return {
        "key": group.key,
        "item_name": group.item_name,
        "unit": group.unit.value,
        "total_quantity": group.total_quantity,
        "next_expiry": group.next_expiry.isoformat() if group.next_expiry else None,
        "summary": describe_group(group),
        "restock_threshold": group.restock_threshold,
        "needs_restock": group.needs_restock,
        "buckets": [bucket_payload(bucket) for bucket in group.buckets],
        "packages": [package_payload(package) for package in group.packages],
    }


def groups_payload(groups: list[InventoryGroup]) -> dict[str, object]:
    """Render a list of groups."""
    return {"groups": [group_payload(group) for group in groups]}


def view_payload(view: InventoryView) -> dict[str, object]:
    """Render the full inventory view, overall and per location type."""
    return {
        "groups": [group_payload(group) for group in view.groups],
        "by_location": {
            location_type.value: [group_payload(group) for group in groups]
            for location_type, groups in view.by_location.items()
        },
        "locations": [
            {"id": location.id, "name": location.name, "type": location.type.value}
            for location in view.locations
        ],
    }


def consumption_payload(consumption: RecipeConsumption) -> dict[str, object]:
    """Render what a cook deducted, missed and stored."""
    return {
        "consumed": [
            {
                "ingredient": item.ingredient,
                "group_key": item.group_key,
                "quantity": item.quantity.amount,
                "unit": item.quantity.unit.value,
            }
            for item in consumption.consumed
        ],
        "shortfalls": [
            {
                "ingredient": shortfall.ingredient,
                "group_key": shortfall.group_key,
                "requested": shortfall.requested,
                "deducted": shortfall.deducted,
                "unit": shortfall.unit.value,
                "reason": shortfall.reason,
            }
            for shortfall in consumption.shortfalls
        ],
        "unmatched": list(consumption.unmatched),
        "leftovers": [package_payload(package) for package in consumption.leftovers],
    }


def nutrition_payload(nutrition: NutritionFacts | None) -> dict[str, object] | None:
    """Render estimated macros, if any."""
    return nutrition.model_dump() if nutrition else None
