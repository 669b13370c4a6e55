"""Grouping of flat package lists into item groups and package-size buckets.

Groups and buckets are derived views: they are rebuilt from the package
records on every read and never persisted.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from kitchen_inventory.domain.packages import (
    LocationType,
    PackageRecord,
    StorageLocation,
)
from kitchen_inventory.domain.units import EPSILON, Unit, amounts_equal, normalize


@dataclass(frozen=True)
class PackageSizeBucket:
    """Packages of one item and unit that share the same original size."""

    original_quantity: float
    unit: Unit
    packages: tuple[PackageRecord, ...]

    @property
    def full_packages(self) -> list[PackageRecord]:
        """Return untouched packages, soonest expiry first."""
        return sorted(
            (package for package in self.packages if package.is_full),
            key=_expiry_then_id,
        )

    @property
    def partial_packages(self) -> list[PackageRecord]:
        """Return opened packages, smallest remaining first."""
        return sorted(
            (package for package in self.packages if not package.is_full),
            key=lambda package: (package.total_quantity, str(package.id)),
        )

    @property
    def partial_total(self) -> float:
        """Return the amount left across opened packages."""
        return normalize(sum(p.total_quantity for p in self.partial_packages))

    @property
    def total_quantity(self) -> float:
        """Return the amount left across the whole bucket."""
        return normalize(sum(p.total_quantity for p in self.packages))

    @property
    def next_expiry(self) -> date | None:
        """Return the earliest expiry date in the bucket."""
        return _min_expiry(self.packages)


@dataclass(frozen=True)
class InventoryGroup:
    """All packages sharing an item name (case-insensitive) and unit."""

    key: str
    item_name: str
    unit: Unit
    packages: tuple[PackageRecord, ...]
    buckets: tuple[PackageSizeBucket, ...]
    next_expiry: date | None

    @property
    def total_quantity(self) -> float:
        """Return the amount left across every package of the group."""
        return normalize(sum(p.total_quantity for p in self.packages))

    @property
    def restock_threshold(self) -> float | None:
        """Return the highest restock threshold set on any package."""
        thresholds = [
            p.restock_threshold
            for p in self.packages
            if p.restock_threshold is not None
        ]
        return max(thresholds) if thresholds else None

    @property
    def needs_restock(self) -> bool:
        """Return True when the amount left is at or below the threshold."""
        threshold = self.restock_threshold
        return threshold is not None and self.total_quantity <= threshold + EPSILON

    def find_bucket(self, original_quantity: float) -> PackageSizeBucket | None:
        """Return the bucket for a package size, if present."""
        for bucket in self.buckets:
            if amounts_equal(bucket.original_quantity, original_quantity):
                return bucket
        return None


def group_key(item_name: str, unit: Unit) -> str:
    """Return the stable key used to address a group."""
    name = " ".join(item_name.casefold().split())
    return f"{name}|{unit.value}"


def group_packages(packages: Iterable[PackageRecord]) -> list[InventoryGroup]:
    """Fold packages into groups, soonest expiring group first."""
    partitions: dict[tuple[str, Unit], list[PackageRecord]] = {}
    for package in packages:
        partitions.setdefault((package.name_key, package.unit), []).append(package)

    groups = [
        _build_group(name_key, unit, members)
        for (name_key, unit), members in partitions.items()
    ]
    return sorted(groups, key=_group_sort_key)


def flatten(groups: Iterable[InventoryGroup]) -> list[PackageRecord]:
    """Return every package held by the groups."""
    return [package for group in groups for package in group.packages]


def find_group(groups: Iterable[InventoryGroup], key: str) -> InventoryGroup | None:
    """Return the group with the given key, if present."""
    for group in groups:
        if group.key == key:
            return group
    return None


def group_by_location(
    packages: Iterable[PackageRecord], locations: Iterable[StorageLocation]
) -> dict[LocationType, list[InventoryGroup]]:
    """Group packages separately for every kind of storage location."""
    location_types = {location.id: location.type for location in locations}
    by_type: dict[LocationType, list[PackageRecord]] = {
        location_type: [] for location_type in LocationType
    }
    for package in packages:
        location_type = location_types.get(package.location_id)
        if location_type is not None:
            by_type[location_type].append(package)
    return {
        location_type: group_packages(members)
        for location_type, members in by_type.items()
    }


def describe_group(group: InventoryGroup) -> str:
    """Return a short package breakdown such as ``2 x 500g, 1 x 500g (24% full)``."""
    unit = group.unit.value
    if group.unit is Unit.PCS:
        return _describe_pieces(group)
    parts: list[str] = []
    for bucket in group.buckets:
        size = _format_amount(bucket.original_quantity)
        infos: list[str] = []
        full_count = len(bucket.full_packages)
        if full_count:
            infos.append(f"{full_count} x {size}{unit}")
        for package in bucket.partial_packages:
            percentage = package.total_quantity / package.original_quantity * 100
            infos.append(f"1 x {size}{unit} ({percentage:.0f}% full)")
        parts.append(", ".join(infos))
    return "; ".join(part for part in parts if part)


def _describe_pieces(group: InventoryGroup) -> str:
    total = group.total_quantity
    package_size = group.buckets[0].original_quantity if group.buckets else 1.0
    if package_size <= 1:
        return f"{total:.0f} pcs"
    full = int(normalize(total / package_size))
    remainder = normalize(total - full * package_size)
    parts: list[str] = []
    if full:
        parts.append(f"{full} x {_format_amount(package_size)}pcs")
    if remainder > 0:
        parts.append(f"{remainder:.0f} pcs")
    return " + ".join(parts)


def _build_group(
    name_key: str, unit: Unit, members: list[PackageRecord]
) -> InventoryGroup:
    by_size: dict[float, list[PackageRecord]] = {}
    for package in members:
        by_size.setdefault(normalize(package.original_quantity), []).append(package)
    buckets = tuple(
        PackageSizeBucket(
            original_quantity=size,
            unit=unit,
            packages=tuple(sorted(by_size[size], key=_expiry_then_id)),
        )
        for size in sorted(by_size)
    )
    ordered = tuple(sorted(members, key=_expiry_then_id))
    return InventoryGroup(
        key=f"{name_key}|{unit.value}",
        item_name=ordered[0].item_name,
        unit=unit,
        packages=ordered,
        buckets=buckets,
        next_expiry=_min_expiry(members),
    )


def _min_expiry(packages: Iterable[PackageRecord]) -> date | None:
    dates = [package.expiry_date for package in packages if package.expiry_date]
    return min(dates) if dates else None


def _expiry_then_id(package: PackageRecord) -> tuple[bool, date, str]:
    return (
        package.expiry_date is None,
        package.expiry_date or date.max,
        str(package.id),
    )


def _group_sort_key(group: InventoryGroup) -> tuple[bool, date, str]:
    return (group.next_expiry is None, group.next_expiry or date.max, group.key)


def _format_amount(amount: float) -> str:
    return f"{amount:g}"
