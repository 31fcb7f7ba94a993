"""Public site configuration endpoints."""

from fastapi import APIRouter

from event_gift.api.v1.dependencies import EventIdDep, SessionDep
from event_gift.db.time import utcnow
from event_gift.schemas.site import GiftResponse
from event_gift.services.event_settings import get_event_settings, gift_visible

router = APIRouter(prefix="/site", tags=["site"])


@router.get("/gift", response_model=GiftResponse)
async def read_gift(db: SessionDep, event_id: EventIdDep) -> GiftResponse:
    """Return the gift links guests may use right now."""
    row = get_event_settings(db, event_id)
    if not gift_visible(row, utcnow()):
        return GiftResponse(enabled=False)
    return GiftResponse(enabled=True, bit_url=row.gift_bit_url, paybox_url=row.gift_paybox_url)
