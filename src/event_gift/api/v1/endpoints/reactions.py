"""Reaction endpoints."""

from fastapi import APIRouter

from event_gift.api.v1.dependencies import DeviceIdDep, SessionDep, to_http_exception
from event_gift.schemas.reaction import ReactionTallyResponse, ReactionToggle
from event_gift.services.errors import EventGiftError
from event_gift.services.reactions import toggle_reaction

router = APIRouter(prefix="/reactions", tags=["reactions"])


@router.post("/toggle", response_model=ReactionTallyResponse)
async def toggle(
    body: ReactionToggle,
    db: SessionDep,
    device_id: DeviceIdDep,
) -> ReactionTallyResponse:
    """Add or remove this device's reaction and return recomputed totals."""
    try:
        result = toggle_reaction(db, body.post_id, device_id, body.emoji)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return ReactionTallyResponse(counts=result.counts, my=result.my_reactions)
