"""Inventory application service.

Every write follows the same cycle: load the packages visible to the caller,
plan a diff with the pure domain functions, and hand the diff to the
repository to apply atomically. When the repository reports that a package
changed underneath the plan, the cycle runs again on fresh data.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Protocol
from uuid import UUID

from kitchen_inventory.domain.adjustments import (
    GroupAdjustment,
    PackageDefaults,
    plan_group_adjustment,
)
from kitchen_inventory.domain.consumption import consume
from kitchen_inventory.domain.errors import (
    ConcurrencyConflictError,
    InvalidRequestError,
    ItemNotFoundError,
    TransferInvariantError,
)
from kitchen_inventory.domain.grouping import (
    InventoryGroup,
    PackageSizeBucket,
    find_group,
    group_by_location,
    group_packages,
)
from kitchen_inventory.domain.packages import (
    LocationType,
    OwnerScope,
    PackageRecord,
    StorageLocation,
)
from kitchen_inventory.domain.transfers import (
    TransferDiff,
    TransferKind,
    TransferRequest,
    plan_bucket_removal,
    plan_thaw,
    plan_transfer,
)
from kitchen_inventory.domain.units import Quantity
from kitchen_inventory.services.audit import AuditService
from kitchen_inventory.services.locations import LocationService

logger = logging.getLogger(__name__)

Planner = Callable[[list[PackageRecord]], TransferDiff]


class InventoryRepository(Protocol):
    """Persistence interface for inventory packages."""

    def list_packages(self, scope: OwnerScope) -> list[PackageRecord]:
        """Return the packages stored for a user and their household."""

    def get_package(self, package_id: UUID) -> PackageRecord | None:
        """Return a package by id, if present."""

    def apply_diff(self, scope: OwnerScope, diff: TransferDiff) -> None:
        """Apply a diff atomically or raise ConcurrencyConflictError."""


@dataclass(frozen=True)
class InventoryView:
    """Grouped inventory, overall and per kind of storage location."""

    groups: list[InventoryGroup]
    by_location: dict[LocationType, list[InventoryGroup]]
    locations: list[StorageLocation]


@dataclass
class InventoryService:
    """Application service for reading and changing the inventory."""

    repository: InventoryRepository
    location_service: LocationService
    audit_service: AuditService | None = None
    conflict_retries: int = 1
    thaw_days: int = 3

    def list_packages(self, scope: OwnerScope) -> list[PackageRecord]:
        """Return the packages the caller may see."""
        return [
            package
            for package in self.repository.list_packages(scope)
            if scope.can_see(package)
        ]

    def list_groups(self, scope: OwnerScope) -> list[InventoryGroup]:
        """Return the caller's inventory grouped by item and unit."""
        return group_packages(self.list_packages(scope))

    def list_by_location(self, scope: OwnerScope) -> InventoryView:
        """Return groups overall and for every kind of storage location."""
        packages = self.list_packages(scope)
        locations = self.location_service.list_locations(scope)
        return InventoryView(
            groups=group_packages(packages),
            by_location=group_by_location(packages, locations),
            locations=locations,
        )

    def get_group(self, scope: OwnerScope, group_key: str) -> InventoryGroup:
        """Return one group or raise ItemNotFoundError."""
        return _require_group(self.list_packages(scope), group_key)

    def add_packages(
        self, scope: OwnerScope, packages: Sequence[PackageRecord]
    ) -> list[InventoryGroup]:
        """Store newly bought packages."""
        if not packages:
            raise InvalidRequestError("No packages to add")
        for package in packages:
            self.location_service.get_location(scope, package.location_id)
            if package.is_private and not scope.is_in_household:
                raise InvalidRequestError(
                    "Private packages need a household to be private from"
                )
        diff = TransferDiff(insertions=tuple(packages))
        self.execute(
            scope,
            lambda _: diff,
            event_type="add_packages",
            entity_id=packages[0].name_key,
        )
        return self.list_groups(scope)

    def transfer(
        self,
        scope: OwnerScope,
        group_key: str,
        original_size: float,
        request: TransferRequest,
    ) -> list[InventoryGroup]:
        """Move, spoil, consume or re-share stock from one package size."""
        return self.transfer_many(scope, group_key, {original_size: request})

    def transfer_many(
        self,
        scope: OwnerScope,
        group_key: str,
        requests: Mapping[float, TransferRequest],
    ) -> list[InventoryGroup]:
        """Apply requests against several package sizes as one change."""
        if not requests:
            raise InvalidRequestError("Nothing to transfer")
        kinds = {request.kind for request in requests.values()}
        for request in requests.values():
            self._check_request(scope, request)
        requests = {
            size: _on_behalf_of(scope, request) for size, request in requests.items()
        }

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            group = _require_group(packages, group_key)
            diff = TransferDiff()
            for size, request in requests.items():
                diff = diff.merge(plan_transfer(_require_bucket(group, size), request))
            return diff

        event = "_".join(sorted(kind.value for kind in kinds))
        self.execute(
            scope, planner, event_type=f"transfer_{event}", entity_id=group_key
        )
        return self.list_groups(scope)

    def delete_bucket(
        self, scope: OwnerScope, group_key: str, original_size: float
    ) -> list[InventoryGroup]:
        """Remove every package of one size from a group."""

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            group = _require_group(packages, group_key)
            return plan_bucket_removal(_require_bucket(group, original_size))

        self.execute(scope, planner, event_type="delete_bucket", entity_id=group_key)
        return self.list_groups(scope)

    def adjust_group(
        self,
        scope: OwnerScope,
        group_key: str,
        adjustment: GroupAdjustment,
        defaults: PackageDefaults | None = None,
    ) -> list[InventoryGroup]:
        """Bring package sizes of a group to target counts."""
        if defaults is not None:
            self.location_service.get_location(scope, defaults.location_id)
            if defaults.is_private and not scope.is_in_household:
                raise InvalidRequestError(
                    "Private packages need a household to be private from"
                )
            defaults = replace(defaults, owner_id=scope.user_id)

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            group = _require_group(packages, group_key)
            return plan_group_adjustment(group, adjustment, defaults)

        self.execute(scope, planner, event_type="adjust_group", entity_id=group_key)
        return self.list_groups(scope)

    def thaw_to_fridge(
        self,
        scope: OwnerScope,
        package_ids: Sequence[UUID],
        today: date | None = None,
    ) -> list[InventoryGroup]:
        """Move frozen packages to the fridge and shorten their expiry."""
        if not package_ids:
            raise InvalidRequestError("No packages to thaw")
        fridge = self.location_service.first_of_type(scope, LocationType.FRIDGE)
        freezer_ids = {
            location.id
            for location in self.location_service.list_locations(scope)
            if location.type is LocationType.FREEZER
        }
        wanted = set(package_ids)

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            selected = [package for package in packages if package.id in wanted]
            missing = wanted - {package.id for package in selected}
            if missing:
                raise ItemNotFoundError(
                    f"Unknown packages: {sorted(str(item) for item in missing)}"
                )
            for package in selected:
                if package.location_id not in freezer_ids:
                    raise InvalidRequestError(
                        f"{package.item_name} is not in a freezer"
                    )
            return plan_thaw(selected, fridge.id, today or date.today(), self.thaw_days)

        self.execute(scope, planner, event_type="thaw", entity_id=fridge.id)
        return self.list_groups(scope)

    def eat(
        self, scope: OwnerScope, group_key: str, quantity: Quantity
    ) -> list[InventoryGroup]:
        """Deduct an eaten amount from a group, soonest expiry first."""

        def planner(packages: list[PackageRecord]) -> TransferDiff:
            return consume([(_require_group(packages, group_key), quantity)])

        self.execute(scope, planner, event_type="eat", entity_id=group_key)
        return self.list_groups(scope)

    def execute(
        self,
        scope: OwnerScope,
        planner: Planner,
        *,
        event_type: str,
        entity_id: str,
    ) -> TransferDiff:
        """Plan against fresh packages and apply, retrying after conflicts."""
        attempt = 0
        while True:
            packages = self.list_packages(scope)
            try:
                diff = planner(packages)
            except TransferInvariantError as exc:
                logger.error(
                    "Invariant violated during %s on %s: %s %s",
                    event_type,
                    entity_id,
                    exc,
                    exc.context,
                )
                raise
            if diff.is_empty:
                return diff
            diff = _claim_insertions(scope, diff)
            try:
                self.repository.apply_diff(scope, diff)
            except ConcurrencyConflictError:
                attempt += 1
                if attempt > self.conflict_retries:
                    raise
                logger.warning(
                    "Inventory changed during %s on %s, planning again",
                    event_type,
                    entity_id,
                )
                continue
            if self.audit_service is not None:
                self.audit_service.record_diff(
                    scope, packages, diff, event_type=event_type, entity_id=entity_id
                )
            return diff

    def _check_request(self, scope: OwnerScope, request: TransferRequest) -> None:
        if request.kind is TransferKind.SET_PRIVACY and not scope.is_in_household:
            raise InvalidRequestError(
                "Privacy only applies to inventory shared with a household"
            )
        if request.kind is TransferKind.MOVE and request.destination_location_id:
            self.location_service.get_location(scope, request.destination_location_id)


def _require_group(packages: list[PackageRecord], group_key: str) -> InventoryGroup:
    group = find_group(group_packages(packages), group_key)
    if group is None:
        raise ItemNotFoundError(f"Unknown inventory group: {group_key}")
    return group


def _require_bucket(group: InventoryGroup, original_size: float) -> PackageSizeBucket:
    bucket = group.find_bucket(original_size)
    if bucket is None:
        raise ItemNotFoundError(
            f"{group.item_name} has no {original_size:g} {group.unit.value} packages"
        )
    return bucket


def _on_behalf_of(scope: OwnerScope, request: TransferRequest) -> TransferRequest:
    """Make stock the caller privatizes their own."""
    if request.kind is TransferKind.SET_PRIVACY and request.make_private:
        return replace(request, owner_id=scope.user_id)
    return request


def _claim_insertions(scope: OwnerScope, diff: TransferDiff) -> TransferDiff:
    """Give new packages without an owner to the acting user."""
    if all(package.owner_id is not None for package in diff.insertions):
        return diff
    return replace(
        diff,
        insertions=tuple(
            package
            if package.owner_id is not None
            else replace(package, owner_id=scope.user_id)
            for package in diff.insertions
        ),
    )
