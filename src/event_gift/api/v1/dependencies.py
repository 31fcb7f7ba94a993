"""Shared API dependencies for device identity, admin auth and cron auth."""

import hmac
from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, Query, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.session import get_db
from event_gift.models import AdminUser
from event_gift.services.admin_access import (
    decode_admin_subject,
    find_active_admin,
    require_permission,
)
from event_gift.services.drive import BackupUploader, get_backup_uploader
from event_gift.services.errors import (
    AdminPermissionError,
    CronAuthError,
    CronNotConfiguredError,
    EditForbiddenError,
    EventGiftError,
    GalleryClosedError,
    NotFoundError,
    PostDeletedError,
    RateLimitExceeded,
)
from event_gift.services.moderation import SoftModerationGate, get_moderation_gate
from event_gift.services.storage import ObjectStorage, get_storage

DEVICE_COOKIE = "device_id"

# HTTP Bearer scheme for admin JWTs
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_device_id(
    device_cookie: Annotated[str | None, Cookie(alias=DEVICE_COOKIE)] = None,
    device_header: Annotated[str | None, Header(alias="X-Device-Id")] = None,
) -> str | None:
    """Return the anonymous device token from the cookie, or the header fallback."""
    value = (device_cookie or device_header or "").strip()
    return value or None


def get_event_id() -> str:
    """Return the event this deployment serves."""
    return settings.event_id


def get_moderation_gate_dep() -> SoftModerationGate:
    """Return the shared soft moderation gate."""
    return get_moderation_gate()


def get_storage_dep() -> ObjectStorage:
    """Return the shared object storage backend."""
    return get_storage()


def get_backup_uploader_dep() -> BackupUploader | None:
    """Return the shared backup uploader, if one is configured."""
    return get_backup_uploader()


DeviceIdDep = Annotated[str | None, Depends(get_device_id)]
EventIdDep = Annotated[str, Depends(get_event_id)]
ModerationGateDep = Annotated[SoftModerationGate, Depends(get_moderation_gate_dep)]
StorageDep = Annotated[ObjectStorage, Depends(get_storage_dep)]
BackupUploaderDep = Annotated[BackupUploader | None, Depends(get_backup_uploader_dep)]


def get_current_admin(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> AdminUser:
    """Resolve the active admin behind a bearer token.

    Raises:
        HTTPException: 401 if the token is invalid or the admin is unknown or inactive.
    """
    email = decode_admin_subject(credentials.credentials)
    if email is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    admin = find_active_admin(db, email)
    if admin is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin not found",
        )
    return admin


CurrentAdminDep = Annotated[AdminUser, Depends(get_current_admin)]


def ensure_permission(admin: AdminUser, *permissions: str) -> None:
    """Translate a missing permission into a 403 response."""
    try:
        require_permission(admin, *permissions)
    except AdminPermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc


def check_cron_credentials(
    *,
    trusted_marker: str | None,
    secret_header: str | None,
    query_secret: str | None,
    authorization: str | None,
    configured_secret: str | None,
) -> None:
    """Accept the trusted platform marker or the shared secret.

    Raises:
        CronNotConfiguredError: If no secret is configured and no marker is present.
        CronAuthError: If the supplied secret is missing or wrong.
    """
    if trusted_marker == "1":
        return
    if not configured_secret:
        raise CronNotConfiguredError("CRON_SECRET not configured")

    bearer = None
    if authorization and authorization.startswith("Bearer "):
        bearer = authorization[len("Bearer "):]
    candidate = secret_header or query_secret or bearer
    if not candidate or not hmac.compare_digest(candidate, configured_secret):
        raise CronAuthError("Unauthorized")


def verify_cron_request(
    trusted_marker: Annotated[str | None, Header(alias=settings.cron_trusted_header)] = None,
    secret_header: Annotated[str | None, Header(alias="x-cron-secret")] = None,
    authorization: Annotated[str | None, Header()] = None,
    secret: Annotated[str | None, Query()] = None,
) -> None:
    """Dependency guarding the scheduled-trigger endpoints."""
    try:
        check_cron_credentials(
            trusted_marker=trusted_marker,
            secret_header=secret_header,
            query_secret=secret,
            authorization=authorization,
            configured_secret=settings.cron_secret,
        )
    except CronNotConfiguredError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    except CronAuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def to_http_exception(exc: EventGiftError) -> HTTPException:
    """Map a service-layer failure onto its HTTP response."""
    if isinstance(exc, RateLimitExceeded):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, EditForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason)
    if isinstance(exc, (AdminPermissionError, GalleryClosedError)):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    if isinstance(exc, PostDeletedError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
