# src/event_gift/scripts/create_admin.py
"""Create or reactivate an admin and print a bearer token for them."""

from __future__ import annotations

import argparse
import sys
from datetime import timedelta

from sqlalchemy import select

from event_gift.core.settings import settings
from event_gift.db.session import SessionLocal
from event_gift.models import AdminUser
from event_gift.models.admin_user import ADMIN_PERMISSIONS, ADMIN_ROLES, ROLE_CLIENT
from event_gift.services.admin_access import create_admin_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or update an admin user")
    parser.add_argument("email")
    parser.add_argument("--role", choices=sorted(ADMIN_ROLES), default=ROLE_CLIENT)
    parser.add_argument(
        "--grant",
        action="append",
        default=[],
        choices=sorted(ADMIN_PERMISSIONS),
        help="Permission to grant; repeatable",
    )
    parser.add_argument("--event", default=settings.event_id)
    parser.add_argument("--token-hours", type=int, default=12)
    args = parser.parse_args()

    email = args.email.strip().lower()
    if not email:
        print("[create_admin] ERROR: email is empty", file=sys.stderr)
        sys.exit(1)

    db = SessionLocal()
    try:
        admin = db.scalar(select(AdminUser).where(AdminUser.email == email))
        if admin is None:
            admin = AdminUser(email=email, event_id=args.event)
            db.add(admin)
        admin.role = args.role
        admin.is_active = True
        admin.permissions = {name: True for name in args.grant}
        db.commit()
        print(f"[create_admin] {email} is an active {admin.role} of {admin.event_id}")
    finally:
        db.close()

    print(create_admin_token(email, timedelta(hours=args.token_hours)))


if __name__ == "__main__":
    main()
