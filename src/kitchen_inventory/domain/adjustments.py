"""Editing a group by target package counts per size."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from kitchen_inventory.domain.errors import InvalidRequestError
from kitchen_inventory.domain.grouping import InventoryGroup, PackageSizeBucket
from kitchen_inventory.domain.packages import PackageRecord
from kitchen_inventory.domain.transfers import (
    PackageRemoval,
    PackageUpdate,
    TransferDiff,
    TransferRequest,
    plan_transfer,
)
from kitchen_inventory.domain.units import EPSILON, Unit, amounts_equal, normalize


@dataclass(frozen=True)
class BucketTarget:
    """Desired contents of one package-size bucket."""

    full_count: int
    partial_amount: float = 0.0


@dataclass(frozen=True)
class PackageDefaults:
    """Attributes given to packages created while adjusting a group."""

    location_id: str
    expiry_date: date | None = None
    is_private: bool = False
    owner_id: UUID | None = None


GroupAdjustment = Mapping[float, BucketTarget]


def plan_group_adjustment(
    group: InventoryGroup,
    adjustment: GroupAdjustment,
    defaults: PackageDefaults | None = None,
) -> TransferDiff:
    """Plan the changes that bring each listed bucket to its target.

    Targets are absolute, so bounds are derived from the group as stored
    now rather than from whatever the client last saw. Buckets that are not
    listed stay untouched.
    """
    diff = TransferDiff()
    for size, target in adjustment.items():
        original_size = normalize(size)
        _validate_target(original_size, target, group.unit)
        bucket = group.find_bucket(original_size) or PackageSizeBucket(
            original_quantity=original_size, unit=group.unit, packages=()
        )
        template = _template(group, bucket, defaults)
        diff = diff.merge(_adjust_full(bucket, target.full_count, template))
        diff = diff.merge(_adjust_partial(bucket, target.partial_amount, template))
    return diff


def _validate_target(size: float, target: BucketTarget, unit: Unit) -> None:
    if size <= 0:
        raise InvalidRequestError("Package size must be positive")
    count = target.full_count
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise InvalidRequestError("Full package count must be a non-negative integer")
    partial = normalize(target.partial_amount)
    if partial < 0:
        raise InvalidRequestError("Partial amount cannot be negative")
    if partial > size - EPSILON:
        raise InvalidRequestError(
            f"Partial amount must be below the package size of {size:g} {unit.value}"
        )


def _template(
    group: InventoryGroup,
    bucket: PackageSizeBucket,
    defaults: PackageDefaults | None,
) -> PackageRecord:
    if bucket.packages:
        return bucket.packages[0]
    if defaults is None and group.packages:
        return group.packages[0]
    if defaults is None:
        raise InvalidRequestError("New packages need a location")
    return PackageRecord.create(
        item_name=group.item_name,
        original_quantity=bucket.original_quantity,
        unit=group.unit,
        location_id=defaults.location_id,
        expiry_date=defaults.expiry_date,
        is_private=defaults.is_private,
        owner_id=defaults.owner_id,
    )


def _new_package(
    template: PackageRecord, size: float, total: float
) -> PackageRecord:
    return PackageRecord.create(
        item_name=template.item_name,
        original_quantity=size,
        total_quantity=total,
        unit=template.unit,
        location_id=template.location_id,
        expiry_date=template.expiry_date,
        is_private=template.is_private,
        owner_id=template.owner_id,
        serving_macros=template.serving_macros,
        serving_size=template.serving_size,
    )


def _adjust_full(
    bucket: PackageSizeBucket, target: int, template: PackageRecord
) -> TransferDiff:
    current = bucket.full_packages
    if target > len(current):
        return TransferDiff(
            insertions=tuple(
                _new_package(
                    template, bucket.original_quantity, bucket.original_quantity
                )
                for _ in range(target - len(current))
            )
        )
    return TransferDiff(
        removals=tuple(
            PackageRemoval.of(package) for package in current[: len(current) - target]
        )
    )


def _adjust_partial(
    bucket: PackageSizeBucket, target: float, template: PackageRecord
) -> TransferDiff:
    current = bucket.partial_total
    target = normalize(target)
    if amounts_equal(current, target):
        return TransferDiff()
    partials = bucket.partial_packages
    if target < current:
        pool = PackageSizeBucket(
            original_quantity=bucket.original_quantity,
            unit=bucket.unit,
            packages=tuple(partials),
        )
        return plan_transfer(
            pool, TransferRequest.consume(partial_amount=normalize(current - target))
        )
    if not partials:
        return TransferDiff(
            insertions=(_new_package(template, bucket.original_quantity, target),)
        )
    largest = partials[-1]
    return TransferDiff(
        updates=(
            PackageUpdate.of(
                largest,
                total_quantity=normalize(largest.total_quantity + target - current),
            ),
        )
    )
