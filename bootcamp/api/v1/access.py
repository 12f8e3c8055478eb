"""
Access guard endpoints, evaluated per navigation by the frontend.
"""

from typing import Optional

from fastapi import APIRouter, Query

from bootcamp.api.deps import OptionalUser
from bootcamp.kernel.permissions.access_guard import landing_path, resolve_route
from bootcamp.schemas.access import AccessDecisionResponse, LandingResponse

router = APIRouter()


@router.get("/resolve", response_model=AccessDecisionResponse)
async def resolve(user: OptionalUser, path: str = Query(..., min_length=1)):
    """Decide whether the caller may view ``path`` or where to go instead."""
    decision = resolve_route(user, path)
    return AccessDecisionResponse(**decision.model_dump(mode="json"))


@router.get("/landing", response_model=LandingResponse)
async def landing(user: OptionalUser, return_path: Optional[str] = None):
    """Where to send the caller after login."""
    return LandingResponse(landing_path=landing_path(user, return_path))
