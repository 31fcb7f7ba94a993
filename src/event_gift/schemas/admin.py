# src/event_gift/schemas/admin.py
"""Schemas for the admin console endpoints."""

from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator


class EventSettingsResponse(BaseModel):
    event_id: str
    event_name: str
    start_at: datetime | None
    require_approval: bool
    approval_lock_after_days: int
    approval_opened_at: datetime | None
    max_blessing_lines: int
    archive_after_days: int
    delete_after_hours: int
    verify_drive_before_delete: bool
    gift_enabled: bool
    gift_bit_url: str | None
    gift_paybox_url: str | None
    gift_auto_hide_after_hours: int | None
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EventSettingsUpdate(BaseModel):
    """Partial settings patch; ``approval_opened_at`` is managed by the server."""

    event_name: str | None = None
    start_at: datetime | None = None
    require_approval: bool | None = None
    approval_lock_after_days: int | None = Field(None, ge=0, le=365)
    max_blessing_lines: int | None = Field(None, ge=0, le=10_000)
    archive_after_days: int | None = Field(None, ge=0, le=3_650)
    delete_after_hours: int | None = Field(None, ge=0, le=24 * 365)
    verify_drive_before_delete: bool | None = None
    gift_enabled: bool | None = None
    gift_bit_url: str | None = None
    gift_paybox_url: str | None = None
    gift_auto_hide_after_hours: int | None = Field(None, ge=1, le=24 * 365)

    model_config = ConfigDict(extra="forbid")


RuleType = Literal["block", "allow"]
RuleScope = Literal["event", "global"]


def _normalize_match_type(value: object) -> object:
    # The admin UI historically sent "whole_word".
    if isinstance(value, str) and value.strip().lower() == "whole_word":
        return "word"
    return value


MatchType = Annotated[
    Literal["exact", "contains", "word"],
    BeforeValidator(_normalize_match_type),
]


class ContentRuleCreate(BaseModel):
    rule_type: RuleType = "block"
    scope: RuleScope = "global"
    match_type: MatchType = "contains"
    expression: str = Field(..., min_length=1, max_length=500)
    is_active: bool = True
    note: str | None = None

    @field_validator("expression")
    @classmethod
    def _strip_expression(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("expression must not be blank")
        return value


class ContentRuleUpdate(BaseModel):
    rule_type: RuleType | None = None
    scope: RuleScope | None = None
    match_type: MatchType | None = None
    expression: str | None = Field(None, min_length=1, max_length=500)
    is_active: bool | None = None
    note: str | None = None

    model_config = ConfigDict(extra="forbid")


class ContentRuleResponse(BaseModel):
    id: int
    rule_type: str
    scope: str
    event_id: str | None
    match_type: str
    expression: str
    is_active: bool
    note: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MediaItemResponse(BaseModel):
    id: int
    post_id: int | None
    kind: str | None
    gallery_id: int | None
    storage_path: str
    public_url: str | None
    created_at: datetime
    archived_at: datetime | None
    delete_after_at: datetime | None
    deleted_at: datetime | None
    drive_file_id: str | None
    last_error: str | None

    model_config = ConfigDict(from_attributes=True)


class GalleryCreate(BaseModel):
    title: str = Field("", max_length=200)
    order_index: int = 0
    upload_enabled: bool = False
    require_approval: bool = True
    upload_default_hours: int = Field(8, ge=1, le=72)

    model_config = ConfigDict(extra="forbid")


class GalleryUpdate(BaseModel):
    """Partial gallery patch; only fields present in the body change."""

    title: str | None = Field(None, max_length=200)
    order_index: int | None = None
    upload_enabled: bool | None = None
    require_approval: bool | None = None
    auto_approve_until: datetime | None = None
    upload_default_hours: int | None = Field(None, ge=1, le=72)

    model_config = ConfigDict(extra="forbid")


class GalleryOpenWindow(BaseModel):
    """Length of a limited upload window; missing or non-positive means the default."""

    hours: float | None = None


class GalleryResponse(BaseModel):
    id: int
    event_id: str
    title: str
    order_index: int
    upload_enabled: bool
    require_approval: bool
    auto_approve_until: datetime | None
    upload_default_hours: int
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdminUserResponse(BaseModel):
    id: int
    email: str
    role: str
    is_active: bool
    permissions: dict[str, bool]

    model_config = ConfigDict(from_attributes=True)


class PermissionsUpdate(BaseModel):
    permissions: dict[str, bool]


class LifecycleResponse(BaseModel):
    ok: bool = True
    archived: int
    deleted: int
    skipped_unverified: int
    gift_hidden: bool = False


class DriveSyncResponse(BaseModel):
    ok: bool = True
    configured: bool
    processed: int
    failed: int
