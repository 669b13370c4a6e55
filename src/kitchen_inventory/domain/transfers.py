"""Planning of quantity transfers against a package-size bucket.

A transfer never touches storage. It reads the bucket, decides which
packages (and which parts of them) satisfy the request, and returns a
``TransferDiff`` for the repository to apply in one transaction. Every
update and removal carries the package state the planner saw so the
repository can reject the diff when the stored package changed in the
meantime.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum
from uuid import UUID

from kitchen_inventory.domain.errors import (
    ConcurrencyConflictError,
    InsufficientQuantityError,
    InvalidRequestError,
    TransferInvariantError,
)
from kitchen_inventory.domain.grouping import PackageSizeBucket
from kitchen_inventory.domain.packages import PackageRecord
from kitchen_inventory.domain.units import (
    EPSILON,
    Quantity,
    amounts_equal,
    is_zero,
    normalize,
    subtract,
)


class TransferKind(Enum):
    """What happens to the selected quantity."""

    MOVE = "move"
    SPOIL = "spoil"
    CONSUME = "consume"
    SET_PRIVACY = "set_privacy"

    @property
    def removes_stock(self) -> bool:
        """Return True when the selected quantity leaves the inventory."""
        return self in {TransferKind.SPOIL, TransferKind.CONSUME}


@dataclass(frozen=True)
class TransferRequest:
    """A request to act on whole full packages plus a partial amount.

    ``owner_id`` is who stock made private will belong to.
    """

    kind: TransferKind
    full_packages: int = 0
    partial_amount: float = 0.0
    destination_location_id: str | None = None
    make_private: bool | None = None
    owner_id: UUID | None = None

    @classmethod
    def move(
        cls,
        destination_location_id: str,
        full_packages: int = 0,
        partial_amount: float = 0.0,
    ) -> "TransferRequest":
        """Build a request that relocates stock."""
        return cls(
            kind=TransferKind.MOVE,
            full_packages=full_packages,
            partial_amount=partial_amount,
            destination_location_id=destination_location_id,
        )

    @classmethod
    def spoil(
        cls, full_packages: int = 0, partial_amount: float = 0.0
    ) -> "TransferRequest":
        """Build a request that discards spoiled stock."""
        return cls(
            kind=TransferKind.SPOIL,
            full_packages=full_packages,
            partial_amount=partial_amount,
        )

    @classmethod
    def consume(
        cls, full_packages: int = 0, partial_amount: float = 0.0
    ) -> "TransferRequest":
        """Build a request that uses stock up."""
        return cls(
            kind=TransferKind.CONSUME,
            full_packages=full_packages,
            partial_amount=partial_amount,
        )

    @classmethod
    def set_privacy(
        cls,
        make_private: bool,
        full_packages: int = 0,
        partial_amount: float = 0.0,
        owner_id: UUID | None = None,
    ) -> "TransferRequest":
        """Build a request that moves stock between private and shared."""
        return cls(
            kind=TransferKind.SET_PRIVACY,
            full_packages=full_packages,
            partial_amount=partial_amount,
            make_private=make_private,
            owner_id=owner_id,
        )


@dataclass(frozen=True)
class PackageState:
    """The fields of a stored package a diff may overwrite, as last read."""

    total_quantity: float
    location_id: str
    is_private: bool
    expiry_date: date | None = None
    owner_id: UUID | None = None

    @classmethod
    def of(cls, package: PackageRecord) -> "PackageState":
        """Capture the current state of a package."""
        return cls(
            total_quantity=package.total_quantity,
            location_id=package.location_id,
            is_private=package.is_private,
            expiry_date=package.expiry_date,
            owner_id=package.owner_id,
        )

    def matches(self, package: PackageRecord) -> bool:
        """Return True when the package still looks the way it was read."""
        return (
            amounts_equal(package.total_quantity, self.total_quantity)
            and package.location_id == self.location_id
            and package.is_private == self.is_private
            and package.expiry_date == self.expiry_date
            and package.owner_id == self.owner_id
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "total_quantity": self.total_quantity,
            "location_id": self.location_id,
            "is_private": self.is_private,
            "expiry_date": _format_date(self.expiry_date),
            "owner_id": _format_id(self.owner_id),
        }


@dataclass(frozen=True)
class PackageUpdate:
    """New state for an existing package, and the state it must still have."""

    package_id: UUID
    expected: PackageState
    total_quantity: float
    location_id: str
    is_private: bool
    expiry_date: date | None = None
    owner_id: UUID | None = None

    @classmethod
    def of(cls, package: PackageRecord, **changes: object) -> "PackageUpdate":
        """Return an update keeping ``package`` as read apart from ``changes``."""
        update = cls(
            package_id=package.id,
            expected=PackageState.of(package),
            total_quantity=package.total_quantity,
            location_id=package.location_id,
            is_private=package.is_private,
            expiry_date=package.expiry_date,
            owner_id=package.owner_id,
        )
        return replace(update, **changes)

    @property
    def expected_total(self) -> float:
        return self.expected.total_quantity


@dataclass(frozen=True)
class PackageRemoval:
    """A package to delete, and the state it must still have."""

    package_id: UUID
    expected: PackageState

    @classmethod
    def of(cls, package: PackageRecord) -> "PackageRemoval":
        return cls(package_id=package.id, expected=PackageState.of(package))

    @property
    def expected_total(self) -> float:
        return self.expected.total_quantity


@dataclass(frozen=True)
class TransferDiff:
    """Updates, removals and insertions that realize a transfer."""

    updates: tuple[PackageUpdate, ...] = field(default_factory=tuple)
    removals: tuple[PackageRemoval, ...] = field(default_factory=tuple)
    insertions: tuple[PackageRecord, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        """Return True when applying the diff changes nothing."""
        return not (self.updates or self.removals or self.insertions)

    @property
    def touched_ids(self) -> set[UUID]:
        """Return ids of existing packages the diff modifies or deletes."""
        return {update.package_id for update in self.updates} | {
            removal.package_id for removal in self.removals
        }

    @property
    def removed_quantity(self) -> float:
        """Return how much stock leaves the inventory, net of insertions.

        Amounts are added as stored, so the figure only means something for
        diffs over packages of one unit. Added stock counts as negative.
        """
        removed = sum(removal.expected_total for removal in self.removals)
        removed += sum(
            update.expected_total - update.total_quantity for update in self.updates
        )
        removed -= sum(package.total_quantity for package in self.insertions)
        return normalize(removed)

    def merge(self, other: "TransferDiff") -> "TransferDiff":
        """Combine two diffs that touch disjoint packages."""
        overlap = self.touched_ids & other.touched_ids
        if overlap:
            raise InvalidRequestError(
                f"Diffs touch the same packages: {sorted(map(str, overlap))}"
            )
        return TransferDiff(
            updates=self.updates + other.updates,
            removals=self.removals + other.removals,
            insertions=self.insertions + other.insertions,
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize the diff for logs and audit events."""
        return {
            "updates": [
                {
                    "id": str(update.package_id),
                    "expected": update.expected.to_dict(),
                    "total_quantity": update.total_quantity,
                    "location_id": update.location_id,
                    "is_private": update.is_private,
                    "expiry_date": _format_date(update.expiry_date),
                    "owner_id": _format_id(update.owner_id),
                }
                for update in self.updates
            ],
            "removals": [
                {"id": str(removal.package_id), "expected": removal.expected.to_dict()}
                for removal in self.removals
            ],
            "insertions": [
                {
                    "id": str(package.id),
                    "item_name": package.item_name,
                    "original_quantity": package.original_quantity,
                    "total_quantity": package.total_quantity,
                    "unit": package.unit.value,
                    "location_id": package.location_id,
                    "is_private": package.is_private,
                    "owner_id": _format_id(package.owner_id),
                }
                for package in self.insertions
            ],
        }


def plan_transfer(bucket: PackageSizeBucket, request: TransferRequest) -> TransferDiff:
    """Plan a move, spoil, consume or privacy change against one bucket."""
    _validate(bucket, request)
    try:
        diff, drawn = _plan(bucket, request)
    except InsufficientQuantityError as exc:
        raise InvalidRequestError(str(exc)) from exc
    _check_conservation(bucket, request, diff, drawn)
    return diff


def plan_bucket_removal(bucket: PackageSizeBucket) -> TransferDiff:
    """Plan deleting every package of a bucket."""
    return TransferDiff(
        removals=tuple(PackageRemoval.of(package) for package in bucket.packages)
    )


def plan_thaw(
    packages: Iterable[PackageRecord],
    fridge_location_id: str,
    today: date,
    days: int = 3,
) -> TransferDiff:
    """Plan moving packages to the fridge, shortening their expiry."""
    limit = today + timedelta(days=days)
    updates = []
    for package in packages:
        expiry = min(package.expiry_date, limit) if package.expiry_date else limit
        updates.append(
            PackageUpdate.of(
                package, location_id=fridge_location_id, expiry_date=expiry
            )
        )
    return TransferDiff(updates=tuple(updates))


def apply_diff(
    packages: Iterable[PackageRecord], diff: TransferDiff
) -> list[PackageRecord]:
    """Apply a diff to package records, checking the state it expects."""
    by_id = {package.id: package for package in packages}
    for removal in diff.removals:
        current = _expect(by_id, removal.package_id, removal.expected)
        by_id.pop(current.id)
    for update in diff.updates:
        current = _expect(by_id, update.package_id, update.expected)
        if is_zero(update.total_quantity):
            raise TransferInvariantError(f"Update leaves package {current.id} empty")
        by_id[current.id] = replace(
            current,
            total_quantity=update.total_quantity,
            location_id=update.location_id,
            is_private=update.is_private,
            expiry_date=update.expiry_date,
            owner_id=update.owner_id,
        )
    for package in diff.insertions:
        if package.id in by_id:
            raise ConcurrencyConflictError(f"Package {package.id} already exists")
        by_id[package.id] = package
    return list(by_id.values())


def diff_between(
    before: Iterable[PackageRecord], after: Iterable[PackageRecord]
) -> TransferDiff:
    """Return the diff that turns one package list into another."""
    after_by_id = {package.id: package for package in after}
    before_list = list(before)
    before_ids = {package.id for package in before_list}
    updates: list[PackageUpdate] = []
    removals: list[PackageRemoval] = []
    for package in before_list:
        current = after_by_id.get(package.id)
        if current is None:
            removals.append(PackageRemoval.of(package))
        elif current != package:
            updates.append(
                PackageUpdate.of(
                    package,
                    total_quantity=current.total_quantity,
                    location_id=current.location_id,
                    is_private=current.is_private,
                    expiry_date=current.expiry_date,
                    owner_id=current.owner_id,
                )
            )
    insertions = tuple(
        package for package in after_by_id.values() if package.id not in before_ids
    )
    return TransferDiff(
        updates=tuple(updates), removals=tuple(removals), insertions=insertions
    )


def _validate(bucket: PackageSizeBucket, request: TransferRequest) -> None:
    full = request.full_packages
    if isinstance(full, bool) or not isinstance(full, int) or full < 0:
        raise InvalidRequestError("Full package count must be a non-negative integer")
    partial = normalize(request.partial_amount)
    if partial < 0:
        raise InvalidRequestError("Partial amount cannot be negative")
    if full == 0 and is_zero(partial):
        raise InvalidRequestError("Nothing to transfer")
    available_full = len(bucket.full_packages)
    if full > available_full:
        raise InvalidRequestError(
            f"Cannot take {full} full packages, only {available_full} available"
        )
    if partial > bucket.partial_total + EPSILON:
        raise InvalidRequestError(
            f"Cannot take {partial:g} {bucket.unit.value} from opened packages, "
            f"only {bucket.partial_total:g} {bucket.unit.value} available"
        )
    if request.kind is TransferKind.MOVE and not request.destination_location_id:
        raise InvalidRequestError("A move needs a destination location")
    if request.kind is TransferKind.SET_PRIVACY and request.make_private is None:
        raise InvalidRequestError("A privacy change needs a target privacy")


def _plan(
    bucket: PackageSizeBucket, request: TransferRequest
) -> tuple[TransferDiff, float]:
    updates: list[PackageUpdate] = []
    removals: list[PackageRemoval] = []
    insertions: list[PackageRecord] = []
    drawn = 0.0

    for package in bucket.full_packages[: request.full_packages]:
        drawn = normalize(drawn + package.total_quantity)
        if request.kind.removes_stock:
            removals.append(PackageRemoval.of(package))
        elif _relocates(package, request):
            updates.append(_relocated(package, request))

    needed = Quantity(request.partial_amount, bucket.unit)
    for package in bucket.partial_packages:
        if needed.is_zero:
            break
        taken = min(needed.amount, package.total_quantity)
        remainder = subtract(package.remaining, Quantity(taken, bucket.unit))
        needed = subtract(needed, Quantity(taken, bucket.unit))
        drawn = normalize(drawn + taken)
        if remainder.is_zero:
            if request.kind.removes_stock:
                removals.append(PackageRemoval.of(package))
            elif _relocates(package, request):
                updates.append(_relocated(package, request))
            continue
        if request.kind.removes_stock:
            updates.append(PackageUpdate.of(package, total_quantity=remainder.amount))
        elif _relocates(package, request):
            updates.append(PackageUpdate.of(package, total_quantity=remainder.amount))
            insertions.append(
                package.split(
                    taken,
                    location_id=_target_location(package, request),
                    is_private=_target_privacy(package, request),
                    owner_id=_target_owner(package, request),
                )
            )

    diff = TransferDiff(
        updates=tuple(updates), removals=tuple(removals), insertions=tuple(insertions)
    )
    return diff, drawn


def _check_conservation(
    bucket: PackageSizeBucket,
    request: TransferRequest,
    diff: TransferDiff,
    drawn: float,
) -> None:
    context = {
        "kind": request.kind.value,
        "original_quantity": bucket.original_quantity,
        "unit": bucket.unit.value,
        "full_packages": request.full_packages,
        "partial_amount": request.partial_amount,
        "diff": diff.to_dict(),
    }
    requested = normalize(
        request.full_packages * bucket.original_quantity + request.partial_amount
    )
    if not amounts_equal(drawn, requested):
        raise TransferInvariantError(
            f"Drew {drawn:g} {bucket.unit.value} for a request of {requested:g}",
            context,
        )
    before = normalize(sum(package.total_quantity for package in bucket.packages))
    after_packages = apply_diff(bucket.packages, diff)
    after = normalize(sum(package.total_quantity for package in after_packages))
    expected_change = requested if request.kind.removes_stock else 0.0
    removed = diff.removed_quantity
    if not (
        amounts_equal(before - after, expected_change)
        and amounts_equal(removed, expected_change)
    ):
        raise TransferInvariantError(
            f"Bucket changed by {before - after:g} {bucket.unit.value} "
            f"(diff removes {removed:g}), expected {expected_change:g}",
            context,
        )
    for package in diff.insertions:
        if not amounts_equal(package.original_quantity, bucket.original_quantity):
            raise TransferInvariantError(
                f"Package {package.id} left its package size", context
            )


def _relocates(package: PackageRecord, request: TransferRequest) -> bool:
    return (
        _target_location(package, request) != package.location_id
        or _target_privacy(package, request) != package.is_private
        or _target_owner(package, request) != package.owner_id
    )


def _target_location(package: PackageRecord, request: TransferRequest) -> str:
    if request.kind is TransferKind.MOVE and request.destination_location_id:
        return request.destination_location_id
    return package.location_id


def _target_privacy(package: PackageRecord, request: TransferRequest) -> bool:
    if request.kind is TransferKind.SET_PRIVACY and request.make_private is not None:
        return request.make_private
    return package.is_private


def _target_owner(package: PackageRecord, request: TransferRequest) -> UUID | None:
    # Stock made private moves into the acting user's own inventory.
    if (
        request.kind is TransferKind.SET_PRIVACY
        and request.make_private
        and request.owner_id is not None
    ):
        return request.owner_id
    return package.owner_id


def _relocated(package: PackageRecord, request: TransferRequest) -> PackageUpdate:
    return PackageUpdate.of(
        package,
        location_id=_target_location(package, request),
        is_private=_target_privacy(package, request),
        owner_id=_target_owner(package, request),
    )


def _expect(
    by_id: dict[UUID, PackageRecord], package_id: UUID, expected: PackageState
) -> PackageRecord:
    current = by_id.get(package_id)
    if current is None:
        raise ConcurrencyConflictError(f"Package {package_id} no longer exists")
    if not expected.matches(current):
        raise ConcurrencyConflictError(
            f"Package {package_id} changed since it was read: "
            f"{PackageState.of(current).to_dict()} != {expected.to_dict()}"
        )
    return current


def _format_date(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _format_id(value: UUID | None) -> str | None:
    return str(value) if value else None
