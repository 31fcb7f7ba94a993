# src/event_gift/schemas/site.py
"""Public site schemas."""

from pydantic import BaseModel


class GiftResponse(BaseModel):
    """Gift links; both URLs are withheld while the gift block is hidden."""

    enabled: bool
    bit_url: str | None = None
    paybox_url: str | None = None
