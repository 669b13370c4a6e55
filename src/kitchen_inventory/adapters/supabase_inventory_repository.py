"""Supabase repository for inventory packages."""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from supabase import Client

from kitchen_inventory.domain.errors import ConcurrencyConflictError
from kitchen_inventory.domain.packages import OwnerScope, PackageRecord, ServingMacros
from kitchen_inventory.domain.transfers import PackageState, TransferDiff
from kitchen_inventory.domain.units import Unit
from kitchen_inventory.services.inventory import InventoryRepository

_TABLE = "inventory_packages"


@dataclass
class SupabaseInventoryRepository(InventoryRepository):
    """Supabase-backed inventory repository.

    Diffs are applied by the ``apply_inventory_diff`` database function so
    every compare-and-set runs in one transaction.
    """

    client: Client

    def list_packages(self, scope: OwnerScope) -> list[PackageRecord]:
        """Return the user's own packages and their household's packages."""
        rows: dict[str, dict[str, object]] = {}
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("owner_id", str(scope.user_id))
            .execute()
        )
        for row in response.data or []:
            rows[str(row["id"])] = row
        if scope.household_id is not None:
            response = (
                self.client.table(_TABLE)
                .select("*")
                .eq("household_id", str(scope.household_id))
                .execute()
            )
            for row in response.data or []:
                rows.setdefault(str(row["id"]), row)
        return [_parse_package(row) for row in rows.values()]

    def get_package(self, package_id: UUID) -> PackageRecord | None:
        """Return a package by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", str(package_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_package(response.data[0])

    def apply_diff(self, scope: OwnerScope, diff: TransferDiff) -> None:
        """Apply a diff in one transaction, raising on a stale package."""
        response = self.client.rpc(
            "apply_inventory_diff",
            {
                "p_updates": [
                    {
                        "id": str(update.package_id),
                        **_expected_columns(update.expected),
                        "total_quantity": update.total_quantity,
                        "location_id": update.location_id,
                        "is_private": update.is_private,
                        "expiry_date": _format_date(update.expiry_date),
                        "owner_id": _format_id(update.owner_id),
                    }
                    for update in diff.updates
                ],
                "p_removals": [
                    {
                        "id": str(removal.package_id),
                        **_expected_columns(removal.expected),
                    }
                    for removal in diff.removals
                ],
                "p_insertions": [
                    _package_row(scope, package) for package in diff.insertions
                ],
            },
        ).execute()
        if not response.data:
            raise RuntimeError("Failed to apply inventory diff")
        result = response.data[0] if isinstance(response.data, list) else response.data
        if result.get("status") == "conflict":
            raise ConcurrencyConflictError(
                f"Package {result.get('package_id')} changed since it was read"
            )


def _expected_columns(state: PackageState) -> dict[str, object]:
    return {
        "expected_total": state.total_quantity,
        "expected_location_id": state.location_id,
        "expected_is_private": state.is_private,
        "expected_expiry_date": _format_date(state.expiry_date),
        "expected_owner_id": _format_id(state.owner_id),
    }


def _package_row(scope: OwnerScope, package: PackageRecord) -> dict[str, object]:
    macros = package.serving_macros
    return {
        "id": str(package.id),
        "item_name": package.item_name,
        "original_quantity": package.original_quantity,
        "total_quantity": package.total_quantity,
        "unit": package.unit.value,
        "location_id": package.location_id,
        "expiry_date": _format_date(package.expiry_date),
        "is_private": package.is_private,
        "owner_id": _format_id(package.owner_id),
        "household_id": _format_id(scope.household_id),
        "serving_calories": macros.calories if macros else None,
        "serving_protein_g": macros.protein_g if macros else None,
        "serving_carbs_g": macros.carbs_g if macros else None,
        "serving_fat_g": macros.fat_g if macros else None,
        "serving_size": package.serving_size,
        "restock_threshold": package.restock_threshold,
    }


def _parse_package(row: dict[str, object]) -> PackageRecord:
    """Parse an inventory row into a domain model."""
    expiry_raw = row.get("expiry_date")
    owner_raw = row.get("owner_id")
    calories = row.get("serving_calories")
    macros = (
        ServingMacros(
            calories=float(calories),
            protein_g=float(row.get("serving_protein_g") or 0.0),
            carbs_g=float(row.get("serving_carbs_g") or 0.0),
            fat_g=float(row.get("serving_fat_g") or 0.0),
        )
        if calories is not None
        else None
    )
    threshold = row.get("restock_threshold")
    return PackageRecord(
        id=UUID(str(row["id"])),
        item_name=str(row.get("item_name", "")),
        original_quantity=float(row["original_quantity"]),
        total_quantity=float(row["total_quantity"]),
        unit=Unit(row["unit"]),
        location_id=str(row["location_id"]),
        expiry_date=(
            date.fromisoformat(expiry_raw)
            if isinstance(expiry_raw, str) and expiry_raw
            else None
        ),
        is_private=bool(row.get("is_private", False)),
        owner_id=UUID(str(owner_raw)) if owner_raw else None,
        serving_macros=macros,
        serving_size=row.get("serving_size"),
        restock_threshold=float(threshold) if threshold is not None else None,
    )


def _format_date(value: date | None) -> str | None:
    return value.isoformat() if value else None


def _format_id(value: UUID | None) -> str | None:
    return str(value) if value else None
