"""Domain models for inventory packages and storage locations."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from uuid import UUID, uuid4

from kitchen_inventory.domain.errors import InvalidRequestError
from kitchen_inventory.domain.units import (
    EPSILON,
    Quantity,
    Unit,
    amounts_equal,
    is_zero,
    normalize,
)


class LocationType(Enum):
    """Kind of storage a location represents."""

    FRIDGE = "Fridge"
    FREEZER = "Freezer"
    PANTRY = "Pantry"


@dataclass(frozen=True)
class StorageLocation:
    """A fridge, freezer or pantry instance owned by a user or household."""

    id: str
    name: str
    type: LocationType


@dataclass(frozen=True)
class ServingMacros:
    """Optional per-serving nutrition annotation carried on a package."""

    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float


@dataclass(frozen=True)
class OwnerScope:
    """Who is asking, and which household inventory they can see."""

    user_id: UUID
    household_id: UUID | None = None
    household_member_ids: frozenset[UUID] = field(default_factory=frozenset)

    @property
    def is_in_household(self) -> bool:
        """Return True when the user belongs to a household."""
        return self.household_id is not None

    def can_see(self, package: "PackageRecord") -> bool:
        """Return True when the package is visible in this scope."""
        if package.is_private:
            return package.owner_id == self.user_id
        if not self.is_in_household:
            return package.owner_id == self.user_id
        return (
            package.owner_id is None
            or package.owner_id == self.user_id
            or package.owner_id in self.household_member_ids
        )


@dataclass(frozen=True)
class PackageRecord:
    """One physical container of an item, as purchased."""

    id: UUID
    item_name: str
    original_quantity: float
    total_quantity: float
    unit: Unit
    location_id: str
    expiry_date: date | None = None
    is_private: bool = False
    owner_id: UUID | None = None
    serving_macros: ServingMacros | None = None
    serving_size: str | None = None
    restock_threshold: float | None = None

    def __post_init__(self) -> None:
        original = normalize(self.original_quantity)
        total = normalize(self.total_quantity)
        if original <= 0:
            raise InvalidRequestError(
                f"Package {self.id} must have a positive original quantity"
            )
        if total < 0 or total > original + EPSILON:
            raise InvalidRequestError(
                f"Package {self.id} remaining quantity {total} is outside "
                f"0..{original}"
            )
        if self.restock_threshold is not None and self.restock_threshold < 0:
            raise InvalidRequestError(
                f"Package {self.id} restock threshold cannot be negative"
            )
        object.__setattr__(self, "original_quantity", original)
        object.__setattr__(self, "total_quantity", min(total, original))

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        item_name: str,
        original_quantity: float,
        unit: Unit,
        location_id: str,
        total_quantity: float | None = None,
        expiry_date: date | None = None,
        is_private: bool = False,
        owner_id: UUID | None = None,
        serving_macros: ServingMacros | None = None,
        serving_size: str | None = None,
        restock_threshold: float | None = None,
    ) -> "PackageRecord":
        """Create a new package with a fresh id, full unless told otherwise."""
        return cls(
            id=uuid4(),
            item_name=item_name.strip(),
            original_quantity=original_quantity,
            total_quantity=(
                original_quantity if total_quantity is None else total_quantity
            ),
            unit=unit,
            location_id=location_id,
            expiry_date=expiry_date,
            is_private=is_private,
            owner_id=owner_id,
            serving_macros=serving_macros,
            serving_size=serving_size,
            restock_threshold=restock_threshold,
        )

    @property
    def name_key(self) -> str:
        """Return the case-insensitive grouping key for the item name."""
        return " ".join(self.item_name.casefold().split())

    @property
    def original(self) -> Quantity:
        """Return the purchased size as a quantity."""
        return Quantity(self.original_quantity, self.unit)

    @property
    def remaining(self) -> Quantity:
        """Return the remaining amount as a quantity."""
        return Quantity(self.total_quantity, self.unit)

    @property
    def is_full(self) -> bool:
        """Return True when nothing has been taken from the package."""
        return amounts_equal(self.total_quantity, self.original_quantity)

    @property
    def is_depleted(self) -> bool:
        """Return True when the package is empty."""
        return is_zero(self.total_quantity)

    def with_changes(
        self,
        *,
        total_quantity: float | None = None,
        location_id: str | None = None,
        is_private: bool | None = None,
        expiry_date: date | None = None,
    ) -> "PackageRecord":
        """Return a copy with mutable fields changed; the original size is kept."""
        return replace(
            self,
            total_quantity=(
                self.total_quantity if total_quantity is None else total_quantity
            ),
            location_id=self.location_id if location_id is None else location_id,
            is_private=self.is_private if is_private is None else is_private,
            expiry_date=self.expiry_date if expiry_date is None else expiry_date,
        )

    def split(
        self,
        amount: float,
        *,
        location_id: str | None = None,
        is_private: bool | None = None,
        owner_id: UUID | None = None,
    ) -> "PackageRecord":
        """Return a new record holding ``amount`` taken out of this package."""
        return replace(
            self,
            id=uuid4(),
            total_quantity=amount,
            location_id=self.location_id if location_id is None else location_id,
            is_private=self.is_private if is_private is None else is_private,
            owner_id=self.owner_id if owner_id is None else owner_id,
        )
