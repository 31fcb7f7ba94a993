"""Admin console endpoints: moderation queue, settings, rules, media and admins."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from event_gift.api.v1.dependencies import (
    CurrentAdminDep,
    EventIdDep,
    ModerationGateDep,
    SessionDep,
    StorageDep,
    ensure_permission,
    to_http_exception,
)
from event_gift.models.admin_user import (
    PERM_ADMINS_MANAGE,
    PERM_GALLERIES_MANAGE,
    PERM_GALLERIES_READ,
    PERM_POSTS_MANAGE,
    PERM_SITE_MANAGE,
)
from event_gift.models.post import KIND_GALLERY_ADMIN
from event_gift.schemas.admin import (
    AdminUserResponse,
    ContentRuleCreate,
    ContentRuleResponse,
    ContentRuleUpdate,
    EventSettingsResponse,
    EventSettingsUpdate,
    GalleryCreate,
    GalleryOpenWindow,
    GalleryResponse,
    GalleryUpdate,
    MediaItemResponse,
    PermissionsUpdate,
)
from event_gift.schemas.post import (
    AdminGalleryPostCreate,
    AdminPostUpdate,
    PostKind,
    PostResponse,
    PostStatus,
)
from event_gift.services import content_rules, galleries
from event_gift.services.admin_access import list_admins, set_permissions
from event_gift.services.errors import EventGiftError
from event_gift.services.event_settings import get_event_settings, update_event_settings
from event_gift.services.lifecycle import discard_media_by_id, list_media_items
from event_gift.services.post_service import (
    Submission,
    admin_update_post,
    list_posts_for_admin,
    submit_post,
)

router = APIRouter(prefix="/admin", tags=["admin"])

MediaState = Annotated[
    str | None,
    Query(alias="status", pattern="^(active|archived|deleted)$"),
]


@router.get("/posts", response_model=list[PostResponse])
async def list_posts(
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
    kind: PostKind | None = None,
    post_status: Annotated[PostStatus | None, Query(alias="status")] = None,
) -> list[PostResponse]:
    """List posts for moderation, newest first."""
    ensure_permission(admin, PERM_POSTS_MANAGE)
    posts = list_posts_for_admin(db, event_id, kind=kind, status=post_status)
    return [PostResponse.model_validate(post) for post in posts]


@router.post("/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery_post(
    post_data: AdminGalleryPostCreate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
    gate: ModerationGateDep,
) -> PostResponse:
    """Publish an organizer gallery post; these bypass every approval gate."""
    ensure_permission(admin, PERM_GALLERIES_MANAGE, PERM_POSTS_MANAGE)
    try:
        post, _ = await submit_post(
            db,
            Submission(kind=KIND_GALLERY_ADMIN, **post_data.model_dump()),
            event_id=event_id,
            device_id=None,
            gate=gate,
        )
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return PostResponse.model_validate(post)


@router.patch("/posts/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    patch: AdminPostUpdate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> PostResponse:
    """Approve, re-pend, delete or edit a post regardless of device or window."""
    ensure_permission(admin, PERM_POSTS_MANAGE)
    fields = patch.model_dump(exclude_unset=True)
    new_status = fields.pop("status", None)
    try:
        post = admin_update_post(db, post_id, event_id, status=new_status, fields=fields)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return PostResponse.model_validate(post)


@router.get("/settings", response_model=EventSettingsResponse)
async def read_settings(
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> EventSettingsResponse:
    ensure_permission(admin, PERM_SITE_MANAGE)
    return EventSettingsResponse.model_validate(get_event_settings(db, event_id))


@router.put("/settings", response_model=EventSettingsResponse)
async def write_settings(
    patch: EventSettingsUpdate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> EventSettingsResponse:
    """Apply a partial settings update; only fields present in the body change."""
    ensure_permission(admin, PERM_SITE_MANAGE)
    try:
        row = update_event_settings(db, event_id, patch.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return EventSettingsResponse.model_validate(row)


@router.get("/content-rules", response_model=list[ContentRuleResponse])
async def list_content_rules(
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> list[ContentRuleResponse]:
    ensure_permission(admin, PERM_SITE_MANAGE)
    return [
        ContentRuleResponse.model_validate(rule)
        for rule in content_rules.list_rules(db, event_id)
    ]


@router.post(
    "/content-rules",
    response_model=ContentRuleResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_content_rule(
    body: ContentRuleCreate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> ContentRuleResponse:
    ensure_permission(admin, PERM_SITE_MANAGE)
    rule = content_rules.create_rule(db, event_id, body.model_dump())
    return ContentRuleResponse.model_validate(rule)


@router.patch("/content-rules/{rule_id}", response_model=ContentRuleResponse)
async def update_content_rule(
    rule_id: int,
    body: ContentRuleUpdate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> ContentRuleResponse:
    ensure_permission(admin, PERM_SITE_MANAGE)
    patch = body.model_dump(exclude_unset=True)
    if isinstance(patch.get("expression"), str):
        patch["expression"] = patch["expression"].strip()
        if not patch["expression"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="expression must not be blank",
            )
    try:
        rule = content_rules.update_rule(db, rule_id, event_id, patch)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return ContentRuleResponse.model_validate(rule)


@router.delete("/content-rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content_rule(
    rule_id: int,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> None:
    ensure_permission(admin, PERM_SITE_MANAGE)
    try:
        content_rules.delete_rule(db, rule_id, event_id)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc


@router.get("/galleries", response_model=list[GalleryResponse])
async def list_galleries(
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> list[GalleryResponse]:
    ensure_permission(admin, PERM_GALLERIES_READ, PERM_GALLERIES_MANAGE, PERM_SITE_MANAGE)
    return [
        GalleryResponse.model_validate(gallery)
        for gallery in galleries.list_galleries(db, event_id)
    ]


@router.post("/galleries", response_model=GalleryResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(
    body: GalleryCreate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> GalleryResponse:
    ensure_permission(admin, PERM_GALLERIES_MANAGE, PERM_SITE_MANAGE)
    gallery = galleries.create_gallery(db, event_id, body.model_dump())
    return GalleryResponse.model_validate(gallery)


@router.put("/galleries/{gallery_id}", response_model=GalleryResponse)
async def update_gallery(
    gallery_id: int,
    patch: GalleryUpdate,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> GalleryResponse:
    """Change a gallery's title, upload switch, approval flag or window end."""
    ensure_permission(admin, PERM_GALLERIES_MANAGE, PERM_SITE_MANAGE)
    try:
        gallery = galleries.update_gallery(
            db, gallery_id, event_id, patch.model_dump(exclude_unset=True)
        )
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return GalleryResponse.model_validate(gallery)


@router.post("/galleries/{gallery_id}/open", response_model=GalleryResponse)
async def open_gallery(
    gallery_id: int,
    body: GalleryOpenWindow,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
) -> GalleryResponse:
    """Open uploads for a limited time; uploads inside the window publish immediately."""
    ensure_permission(admin, PERM_GALLERIES_MANAGE, PERM_SITE_MANAGE)
    try:
        gallery = galleries.open_upload_window(db, gallery_id, event_id, body.hours)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return GalleryResponse.model_validate(gallery)


@router.get("/media-items", response_model=list[MediaItemResponse])
async def list_media(
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
    state: MediaState = None,
) -> list[MediaItemResponse]:
    """List uploads by lifecycle state (active, archived, deleted)."""
    ensure_permission(admin, PERM_GALLERIES_READ, PERM_GALLERIES_MANAGE)
    items = list_media_items(db, event_id, state)
    return [MediaItemResponse.model_validate(item) for item in items]


@router.delete("/media-items/{item_id}", response_model=MediaItemResponse)
async def delete_media(
    item_id: int,
    db: SessionDep,
    admin: CurrentAdminDep,
    event_id: EventIdDep,
    storage: StorageDep,
) -> MediaItemResponse:
    """Remove an upload from storage now; the row keeps its ``deleted_at`` stamp."""
    ensure_permission(admin, PERM_GALLERIES_MANAGE)
    try:
        item = discard_media_by_id(db, item_id, event_id, storage)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return MediaItemResponse.model_validate(item)


@router.get("/admins", response_model=list[AdminUserResponse])
async def read_admins(
    db: SessionDep,
    admin: CurrentAdminDep,
) -> list[AdminUserResponse]:
    ensure_permission(admin, PERM_ADMINS_MANAGE)
    return [AdminUserResponse.model_validate(row) for row in list_admins(db, admin.event_id)]


@router.put("/admins/{admin_id}/permissions", response_model=AdminUserResponse)
async def write_permissions(
    admin_id: int,
    body: PermissionsUpdate,
    db: SessionDep,
    admin: CurrentAdminDep,
) -> AdminUserResponse:
    """Replace another admin's permission map."""
    try:
        target = set_permissions(db, admin, admin_id, body.permissions)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return AdminUserResponse.model_validate(target)
