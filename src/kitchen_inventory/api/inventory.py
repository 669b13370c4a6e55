"""Inventory API endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from kitchen_inventory.api.auth import require_user
from kitchen_inventory.api.schemas import (
    AddPackagesRequest,
    AdjustGroupRequest,
    EatRequest,
    PackageIn,
    ThawRequest,
    TransferRequestBody,
    groups_payload,
    view_payload,
)
from kitchen_inventory.domain.adjustments import BucketTarget, PackageDefaults
from kitchen_inventory.domain.errors import InvalidRequestError
from kitchen_inventory.domain.packages import OwnerScope, PackageRecord, ServingMacros
from kitchen_inventory.domain.transfers import TransferKind, TransferRequest
from kitchen_inventory.domain.units import Quantity, Unit, normalize, parse_unit

if TYPE_CHECKING:
    from kitchen_inventory.containers import AppContainer

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("")
async def get_inventory(
    request: Request, scope: OwnerScope = Depends(require_user)
) -> dict[str, object]:
    """Return grouped inventory overall and per storage type."""
    container: AppContainer = request.app.state.container
    return view_payload(container.inventory_service.list_by_location(scope))


@router.post("/packages")
async def add_packages(
    body: AddPackagesRequest,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Add newly bought packages."""
    container: AppContainer = request.app.state.container
    packages: list[PackageRecord] = []
    for item in body.packages:
        packages.extend(_build_packages(item))
    return groups_payload(container.inventory_service.add_packages(scope, packages))


@router.post("/groups/{group_key}/transfer")
async def transfer(
    group_key: str,
    body: TransferRequestBody,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Move, spoil, consume or re-share stock across package sizes."""
    container: AppContainer = request.app.state.container
    kind = TransferKind(body.kind)
    requests: dict[float, TransferRequest] = {}
    for item in body.buckets:
        size = normalize(item.original_quantity)
        if size in requests:
            raise InvalidRequestError(f"Package size {size:g} listed twice")
        requests[size] = TransferRequest(
            kind=kind,
            full_packages=item.full_packages,
            partial_amount=item.partial_amount,
            destination_location_id=body.destination_location_id,
            make_private=body.make_private,
        )
    groups = container.inventory_service.transfer_many(scope, group_key, requests)
    return groups_payload(groups)


@router.delete("/groups/{group_key}/buckets/{original_quantity}")
async def delete_bucket(
    group_key: str,
    original_quantity: float,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Remove every package of one size."""
    container: AppContainer = request.app.state.container
    groups = container.inventory_service.delete_bucket(
        scope, group_key, original_quantity
    )
    return groups_payload(groups)


@router.put("/groups/{group_key}")
async def adjust_group(
    group_key: str,
    body: AdjustGroupRequest,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Set package counts per size for a group."""
    container: AppContainer = request.app.state.container
    adjustment: dict[float, BucketTarget] = {}
    for item in body.buckets:
        size = normalize(item.original_quantity)
        if size in adjustment:
            raise InvalidRequestError(f"Package size {size:g} listed twice")
        adjustment[size] = BucketTarget(item.full_count, item.partial_amount)
    defaults = (
        PackageDefaults(
            location_id=body.location_id,
            expiry_date=body.expiry_date,
            is_private=body.is_private,
        )
        if body.location_id
        else None
    )
    groups = container.inventory_service.adjust_group(
        scope, group_key, adjustment, defaults
    )
    return groups_payload(groups)


@router.post("/groups/{group_key}/eat")
async def eat(
    group_key: str,
    body: EatRequest,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Deduct an eaten amount, soonest expiry first."""
    container: AppContainer = request.app.state.container
    service = container.inventory_service
    unit = (
        _require_unit(body.unit)
        if body.unit
        else service.get_group(scope, group_key).unit
    )
    groups = service.eat(scope, group_key, Quantity(body.quantity, unit))
    return groups_payload(groups)


@router.post("/thaw")
async def thaw(
    body: ThawRequest,
    request: Request,
    scope: OwnerScope = Depends(require_user),
) -> dict[str, object]:
    """Move frozen packages to the fridge."""
    container: AppContainer = request.app.state.container
    groups = container.inventory_service.thaw_to_fridge(scope, body.package_ids)
    return groups_payload(groups)


def _build_packages(item: PackageIn) -> list[PackageRecord]:
    unit = _require_unit(item.unit)
    macros = (
        ServingMacros(**item.serving_macros.model_dump())
        if item.serving_macros
        else None
    )
    return [
        PackageRecord.create(
            item_name=item.item_name,
            original_quantity=item.original_quantity,
            total_quantity=item.total_quantity,
            unit=unit,
            location_id=item.location_id,
            expiry_date=item.expiry_date,
            is_private=item.is_private,
            serving_macros=macros,
            serving_size=item.serving_size,
            restock_threshold=item.restock_threshold,
        )
        for _ in range(item.count)
    ]


def _require_unit(text: str) -> Unit:
    unit = parse_unit(text)
    if unit is None:
        raise InvalidRequestError(f"Unknown unit: {text}")
    return unit
