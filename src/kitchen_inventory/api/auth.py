"""Request authentication with a shared API token."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import Depends, Header, HTTPException, Request, status

from kitchen_inventory.domain.packages import OwnerScope  # noqa: TC001

if TYPE_CHECKING:
    from kitchen_inventory.containers import AppContainer


def _get_api_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.api_token


async def require_user(
    request: Request,
    x_api_token: str | None = Header(default=None),
    x_user_id: UUID | None = Header(default=None),
    api_token: str = Depends(_get_api_token),
) -> OwnerScope:
    """Check the API token and resolve the caller's household scope."""
    if not x_api_token or x_api_token != api_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    if x_user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user id"
        )
    container: AppContainer = request.app.state.container
    return container.household_service.resolve_scope(x_user_id)
