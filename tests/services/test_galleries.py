"""Tests for gallery upload windows."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from event_gift.models import Gallery
from event_gift.services.errors import GalleryClosedError, GalleryNotFoundError, SubmissionError
from event_gift.services.galleries import (
    create_gallery,
    gallery_for_upload,
    in_auto_approve_window,
    list_galleries,
    open_upload_window,
    update_gallery,
    upload_window_hours,
)

NOW = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc)


class TestAutoApproveWindow:
    def test_open_before_the_deadline(self) -> None:
        gallery = Gallery(auto_approve_until=NOW + timedelta(minutes=1))
        assert in_auto_approve_window(gallery, NOW) is True

    def test_closed_at_the_deadline(self) -> None:
        gallery = Gallery(auto_approve_until=NOW)
        assert in_auto_approve_window(gallery, NOW) is False

    def test_no_window(self) -> None:
        assert in_auto_approve_window(Gallery(auto_approve_until=None), NOW) is False

    def test_naive_deadline_is_utc(self) -> None:
        gallery = Gallery(auto_approve_until=datetime(2024, 6, 1, 21, 0))
        assert in_auto_approve_window(gallery, NOW) is True


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(None, 8), (0, 8), (-3, 8), (2.5, 2.5), (72, 72), (500, 72)],
)
def test_upload_window_hours(requested: float | None, expected: float) -> None:
    assert upload_window_hours(requested) == expected


def test_open_upload_window_enables_uploads(
    db_session: Session,
    make_gallery: Callable[..., Gallery],
    event_id: str,
) -> None:
    gallery = make_gallery(upload_enabled=False, upload_default_hours=4)

    opened = open_upload_window(db_session, gallery.id, event_id, now=NOW)

    assert opened.upload_enabled is True
    assert opened.auto_approve_until == NOW + timedelta(hours=4)

    reopened = open_upload_window(db_session, gallery.id, event_id, hours=100, now=NOW)
    assert reopened.auto_approve_until == NOW + timedelta(hours=72)


def test_gallery_for_upload(
    db_session: Session,
    make_gallery: Callable[..., Gallery],
    event_id: str,
) -> None:
    open_gallery = make_gallery()
    closed = make_gallery(upload_enabled=False)

    assert gallery_for_upload(db_session, open_gallery.id, event_id) is open_gallery
    with pytest.raises(GalleryClosedError):
        gallery_for_upload(db_session, closed.id, event_id)
    with pytest.raises(GalleryNotFoundError):
        gallery_for_upload(db_session, open_gallery.id, "another-event")
    with pytest.raises(GalleryNotFoundError):
        gallery_for_upload(db_session, 9999, event_id)


def test_create_list_and_update(db_session: Session, event_id: str) -> None:
    second = create_gallery(db_session, event_id, {"title": "Ceremony", "order_index": 2})
    first = create_gallery(db_session, event_id, {"title": "Reception", "order_index": 1})

    assert [gallery.id for gallery in list_galleries(db_session, event_id)] == [
        first.id,
        second.id,
    ]
    assert second.upload_enabled is False
    assert second.require_approval is True

    updated = update_gallery(db_session, second.id, event_id, {"require_approval": False})
    assert updated.require_approval is False
    assert updated.title == "Ceremony"

    with pytest.raises(SubmissionError):
        update_gallery(db_session, second.id, event_id, {"event_id": "elsewhere"})
