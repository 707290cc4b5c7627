"""Killmail page redirect."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from killboard.validation import ENTITY_ID, validated

router = APIRouter(tags=["Killmails"])


@router.get(
    "/killmail/{id}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    response_class=RedirectResponse,
    summary="Redirect to the ESI representation of a killmail",
)
async def redirect_killmail(
    params: Annotated[Any, Depends(validated(ENTITY_ID, "path"))],
) -> RedirectResponse:
    """Answer with a temporary redirect; the store is not consulted."""
    return RedirectResponse(
        f"/killmail/{params.id}/esi",
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )
