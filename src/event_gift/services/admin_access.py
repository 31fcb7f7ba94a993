"""Admin identities, bearer tokens and permission checks."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.time import utcnow
from event_gift.models import AdminUser
from event_gift.models.admin_user import ADMIN_PERMISSIONS, PERM_ADMINS_MANAGE, ROLE_MASTER
from event_gift.services.errors import AdminPermissionError, NotFoundError, SubmissionError

DEFAULT_TOKEN_TTL = timedelta(hours=12)


def create_admin_token(email: str, expires_in: timedelta = DEFAULT_TOKEN_TTL) -> str:
    """Return a signed bearer token for ``email`` (tooling and tests)."""
    payload = {"sub": email, "exp": utcnow() + expires_in}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_admin_subject(token: str) -> str | None:
    """Return the admin email carried by ``token``, or None if it is invalid."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None


def find_active_admin(db: Session, email: str) -> AdminUser | None:
    return db.scalar(
        select(AdminUser).where(AdminUser.email == email, AdminUser.is_active.is_(True))
    )


def has_permission(admin: AdminUser, permission: str) -> bool:
    if admin.role == ROLE_MASTER:
        return True
    return bool((admin.permissions or {}).get(permission))


def require_permission(admin: AdminUser, *permissions: str) -> None:
    """Pass if the admin holds any of ``permissions``.

    Raises:
        AdminPermissionError: When none is held.
    """
    if any(has_permission(admin, permission) for permission in permissions):
        return
    raise AdminPermissionError(f"Missing permission: {' or '.join(permissions)}")


def list_admins(db: Session, event_id: str) -> list[AdminUser]:
    return list(
        db.scalars(
            select(AdminUser).where(AdminUser.event_id == event_id).order_by(AdminUser.id.asc())
        )
    )


def set_permissions(
    db: Session,
    actor: AdminUser,
    target_id: int,
    permissions: Mapping[str, bool],
) -> AdminUser:
    """Replace the permission map of another admin of the same event.

    Only a master may grant ``admins.manage``; nobody but a master may change a
    master.

    Raises:
        SubmissionError: On unknown permission names.
        NotFoundError: If the target admin does not exist in this event.
        AdminPermissionError: When the actor may not change the target.
    """
    require_permission(actor, PERM_ADMINS_MANAGE)
    unknown = set(permissions) - ADMIN_PERMISSIONS
    if unknown:
        raise SubmissionError(f"Unknown permissions: {', '.join(sorted(unknown))}")

    target = db.get(AdminUser, target_id)
    if target is None or target.event_id != actor.event_id:
        raise NotFoundError(f"Admin {target_id} not found")
    if actor.role != ROLE_MASTER:
        if target.role == ROLE_MASTER:
            raise AdminPermissionError("Only a master can change a master")
        if permissions.get(PERM_ADMINS_MANAGE):
            raise AdminPermissionError("Only a master can grant admins.manage")

    target.permissions = {name: bool(value) for name, value in permissions.items()}
    db.commit()
    db.refresh(target)
    return target
