"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from kitchen_inventory.api.auth import require_user
from kitchen_inventory.api.inventory import router as inventory_router
from kitchen_inventory.api.schemas import (
    CookRequest,
    UnitSystemRequest,
    consumption_payload,
    groups_payload,
    nutrition_payload,
)
from kitchen_inventory.app_logging import configure_logging
from kitchen_inventory.containers import AppContainer
from kitchen_inventory.domain.consumption import Recipe
from kitchen_inventory.domain.errors import (
    ConcurrencyConflictError,
    EstimationError,
    IncompatibleUnitError,
    InsufficientQuantityError,
    InvalidRequestError,
    ItemNotFoundError,
    RateLimitExceededError,
    TransferInvariantError,
)
from kitchen_inventory.domain.packages import OwnerScope, ServingMacros
from kitchen_inventory.services.cooking import LeftoverRequest

_ERROR_STATUS: dict[type[Exception], int] = {
    InvalidRequestError: 422,
    InsufficientQuantityError: 422,
    IncompatibleUnitError: 422,
    ItemNotFoundError: 404,
    ConcurrencyConflictError: 409,
    EstimationError: 502,
    RateLimitExceededError: 429,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        try:
            await app.state.container.close_resources()
        except Exception:
            logger.exception("Failed to close application resources")

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(inventory_router)

    async def handle_domain_error(request: Request, exc: Exception) -> JSONResponse:
        status_code = next(
            _ERROR_STATUS[error_type]
            for error_type in type(exc).__mro__
            if error_type in _ERROR_STATUS
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    for error_type in _ERROR_STATUS:
        app.add_exception_handler(error_type, handle_domain_error)

    @app.exception_handler(TransferInvariantError)
    async def handle_invariant_error(
        request: Request, exc: TransferInvariantError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Inventory change was rejected by a consistency check"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/recipes/cook")
    async def cook(
        body: CookRequest,
        request: Request,
        scope: OwnerScope = Depends(require_user),
    ) -> dict[str, object]:
        """Deduct a cooked recipe and store its leftovers."""
        state_container: AppContainer = request.app.state.container
        recipe = Recipe(
            title=body.title,
            servings=body.servings,
            ingredients=tuple(body.ingredients),
            macros=ServingMacros(**body.macros.model_dump()) if body.macros else None,
        )
        result = await state_container.cooking_service.cook(
            scope,
            recipe,
            servings_eaten=body.servings_eaten,
            total_servings=body.total_servings or body.servings,
            leftovers=[
                LeftoverRequest(
                    location_id=item.location_id,
                    servings=item.servings,
                    is_private=item.is_private,
                )
                for item in body.leftovers
            ],
            servings_eaten_by_others=body.servings_eaten_by_others,
            estimate_nutrition=body.estimate_nutrition,
        )
        return {
            **consumption_payload(result.consumption),
            **groups_payload(result.groups),
            "nutrition": nutrition_payload(result.nutrition),
            "estimation_error": result.estimation_error,
        }

    @app.get("/units")
    async def units(
        request: Request, scope: OwnerScope = Depends(require_user)
    ) -> dict[str, object]:
        """Return the units offered for the caller's unit system."""
        state_container: AppContainer = request.app.state.container
        service = state_container.user_settings_service
        return {
            "unit_system": service.get_unit_system(scope.user_id),
            "units": [unit.value for unit in service.offered_units(scope.user_id)],
        }

    @app.put("/settings/unit-system")
    async def set_unit_system(
        body: UnitSystemRequest,
        request: Request,
        scope: OwnerScope = Depends(require_user),
    ) -> dict[str, str]:
        """Store the caller's unit system preference."""
        state_container: AppContainer = request.app.state.container
        try:
            unit_system = state_container.user_settings_service.set_unit_system(
                scope.user_id, body.unit_system
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return {"unit_system": unit_system}

    return app
