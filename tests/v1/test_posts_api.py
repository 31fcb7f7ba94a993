"""API tests for guest submissions, the feed, and device-scoped edits."""

from collections.abc import Callable
from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from event_gift.db.time import utcnow
from event_gift.models import Gallery, MediaItem, Post
from event_gift.services.reactions import toggle_reaction

POSTS_URL = "/api/v1/posts/"


def test_create_blessing(client: TestClient, device_headers: dict[str, str]) -> None:
    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "author_name": "Dana", "text": "Mazal tov!"},
        headers=device_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["ok"] is True
    assert data["status"] == "approved"
    assert data["pending_reason"] is None
    assert data["editable_until"] is not None
    assert data["post"]["text"] == "Mazal tov!"


def test_flagged_blessing_is_held_not_rejected(
    client: TestClient,
    device_headers: dict[str, str],
) -> None:
    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "I hate weddings"},
        headers=device_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    assert data["pending_reason"] == "moderation"
    assert data["flagged"] is True


def test_too_many_lines_is_reported(
    client: TestClient,
    device_headers: dict[str, str],
    event_settings,
    db_session: Session,
) -> None:
    event_settings.max_blessing_lines = 2
    db_session.flush()

    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "one\ntwo\nthree"},
        headers=device_headers,
    )

    data = response.json()
    assert data["status"] == "pending"
    assert data["pending_reason"] == "lines"
    assert data["too_many_lines"] is True


def test_submission_without_device_has_no_edit_window(client: TestClient) -> None:
    response = client.post(POSTS_URL, json={"kind": "blessing", "text": "Hi"})
    assert response.status_code == 201
    assert response.json()["editable_until"] is None


def test_empty_blessing_is_rejected(client: TestClient, device_headers: dict[str, str]) -> None:
    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "   "},
        headers=device_headers,
    )
    assert response.status_code == 400


def test_guests_cannot_create_admin_gallery_posts(
    client: TestClient,
    device_headers: dict[str, str],
) -> None:
    response = client.post(
        POSTS_URL,
        json={"kind": "gallery_admin", "media_url": "https://cdn.example/a.jpg"},
        headers=device_headers,
    )
    assert response.status_code == 403


def test_eleventh_blessing_in_an_hour_is_rate_limited(
    client: TestClient,
    device_headers: dict[str, str],
    other_device_headers: dict[str, str],
) -> None:
    for index in range(10):
        response = client.post(
            POSTS_URL,
            json={"kind": "blessing", "text": f"Blessing {index}"},
            headers=device_headers,
        )
        assert response.status_code == 201

    blocked = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "One more"},
        headers=device_headers,
    )
    assert blocked.status_code == 429

    # Other kinds and other devices keep their own quota.
    gallery = client.post(
        POSTS_URL,
        json={"kind": "gallery", "media_url": "https://cdn.example/a.jpg"},
        headers=device_headers,
    )
    assert gallery.status_code == 201
    other = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "Hi"},
        headers=other_device_headers,
    )
    assert other.status_code == 201


def test_gallery_upload_registers_media_item(
    client: TestClient,
    device_headers: dict[str, str],
    db_session: Session,
) -> None:
    response = client.post(
        POSTS_URL,
        json={
            "kind": "gallery",
            "media_url": "https://cdn.example/uploads/dance.jpg",
            "media_path": "uploads/dance.jpg",
        },
        headers=device_headers,
    )

    assert response.status_code == 201
    item = db_session.scalar(select(MediaItem).where(MediaItem.storage_path == "uploads/dance.jpg"))
    assert item is not None
    assert item.post_id == response.json()["post"]["id"]


def test_cookie_device_id_is_accepted(client: TestClient) -> None:
    client.cookies.set("device_id", "cookie-device")
    try:
        response = client.post(POSTS_URL, json={"kind": "blessing", "text": "From a cookie"})
    finally:
        client.cookies.clear()
    assert response.status_code == 201
    assert response.json()["editable_until"] is not None


def test_feed_lists_approved_posts_with_reactions(
    client: TestClient,
    db_session: Session,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
    other_device_headers: dict[str, str],
) -> None:
    older = make_post(text="First")
    newer = make_post(text="Second")
    make_post(text="Held", status="pending")
    make_post(text="Gone", status="deleted")
    make_post(kind="gallery", media_url="https://cdn.example/a.jpg")
    toggle_reaction(db_session, newer.id, "device-cccc", "🔥")
    toggle_reaction(db_session, newer.id, "device-aaaa", "🔥")

    response = client.get("/api/v1/posts/feed", headers=device_headers)

    assert response.status_code == 200
    data = response.json()
    assert [item["id"] for item in data] == [newer.id, older.id]
    assert data[0]["reaction_counts"]["🔥"] == 2
    assert data[0]["my_reactions"] == ["🔥"]
    assert data[0]["editable"] is True
    assert "device_id" not in data[0]

    as_other = client.get("/api/v1/posts/feed", headers=other_device_headers).json()
    assert as_other[0]["my_reactions"] == []
    assert as_other[0]["editable"] is False


def test_feed_pagination(client: TestClient, make_post: Callable[..., Post]) -> None:
    posts = [make_post(text=f"Post {index}") for index in range(3)]

    first_page = client.get("/api/v1/posts/feed", params={"limit": 2}).json()
    assert [item["id"] for item in first_page] == [posts[2].id, posts[1].id]

    second_page = client.get(
        "/api/v1/posts/feed",
        params={"limit": 2, "before": first_page[-1]["id"]},
    ).json()
    assert [item["id"] for item in second_page] == [posts[0].id]


def test_owner_can_edit_within_window(
    client: TestClient,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
) -> None:
    post = make_post()

    response = client.put(
        f"/api/v1/posts/{post.id}",
        json={"text": "Mazal tov, again!"},
        headers=device_headers,
    )

    assert response.status_code == 200
    assert response.json()["text"] == "Mazal tov, again!"
    assert response.json()["status"] == "approved"


def test_flagged_edit_returns_post_to_pending(
    client: TestClient,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
) -> None:
    post = make_post()

    response = client.put(
        f"/api/v1/posts/{post.id}",
        json={"text": "I hate this"},
        headers=device_headers,
    )

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["pending_reason"] == "moderation"


def test_other_device_cannot_edit(
    client: TestClient,
    make_post: Callable[..., Post],
    other_device_headers: dict[str, str],
) -> None:
    post = make_post()
    response = client.put(
        f"/api/v1/posts/{post.id}",
        json={"text": "x"},
        headers=other_device_headers,
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "device_mismatch"


def test_edit_after_window_is_forbidden(
    client: TestClient,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
) -> None:
    post = make_post(created_at=utcnow() - timedelta(days=2))
    response = client.put(f"/api/v1/posts/{post.id}", json={"text": "x"}, headers=device_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "window_expired"


def test_edit_without_device_is_bad_request(
    client: TestClient,
    make_post: Callable[..., Post],
) -> None:
    post = make_post()
    response = client.put(f"/api/v1/posts/{post.id}", json={"text": "x"})
    assert response.status_code == 400


def test_edit_rejects_unknown_fields(
    client: TestClient,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
) -> None:
    post = make_post()
    response = client.put(
        f"/api/v1/posts/{post.id}",
        json={"status": "approved"},
        headers=device_headers,
    )
    assert response.status_code == 422


def test_edit_missing_post(client: TestClient, device_headers: dict[str, str]) -> None:
    response = client.put("/api/v1/posts/9999", json={"text": "x"}, headers=device_headers)
    assert response.status_code == 404


def test_owner_can_delete(
    client: TestClient,
    db_session: Session,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
) -> None:
    post = make_post()

    response = client.delete(f"/api/v1/posts/{post.id}", headers=device_headers)

    assert response.status_code == 204
    db_session.refresh(post)
    assert post.status == "deleted"

    again = client.delete(f"/api/v1/posts/{post.id}", headers=device_headers)
    assert again.status_code == 403
    assert again.json()["detail"] == "deleted"


def test_delete_removes_uploaded_media(
    client: TestClient,
    db_session: Session,
    make_post: Callable[..., Post],
    make_media_item: Callable[..., MediaItem],
    storage,
    device_headers: dict[str, str],
) -> None:
    post = make_post(kind="gallery", media_path="uploads/toast.jpg")
    item = make_media_item(storage_path="uploads/toast.jpg", post_id=post.id)

    response = client.delete(f"/api/v1/posts/{post.id}", headers=device_headers)

    assert response.status_code == 204
    db_session.refresh(item)
    assert item.deleted_at is not None
    assert storage.removed == ["uploads/toast.jpg"]


def _upload_gallery_photo(client: TestClient, headers: dict[str, str], path: str) -> int:
    response = client.post(
        POSTS_URL,
        json={"kind": "gallery", "media_url": f"https://cdn.example/{path}", "media_path": path},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["post"]["id"]


def test_media_path_of_another_post_cannot_be_claimed(
    client: TestClient,
    db_session: Session,
    storage,
    device_headers: dict[str, str],
    other_device_headers: dict[str, str],
) -> None:
    owner_post_id = _upload_gallery_photo(client, device_headers, "uploads/first-dance.jpg")

    claimed = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "Lovely!", "media_path": "uploads/first-dance.jpg"},
        headers=other_device_headers,
    )
    assert claimed.status_code == 400

    item = db_session.scalar(
        select(MediaItem).where(MediaItem.storage_path == "uploads/first-dance.jpg")
    )
    assert item.post_id == owner_post_id
    assert item.deleted_at is None
    assert storage.removed == []


def test_edit_cannot_point_at_another_devices_upload(
    client: TestClient,
    db_session: Session,
    make_post: Callable[..., Post],
    device_headers: dict[str, str],
    other_device_headers: dict[str, str],
) -> None:
    _upload_gallery_photo(client, device_headers, "uploads/cake.jpg")
    intruder = make_post(device_id="device-bbbb")

    response = client.put(
        f"/api/v1/posts/{intruder.id}",
        json={"media_path": "uploads/cake.jpg"},
        headers=other_device_headers,
    )

    assert response.status_code == 400
    db_session.refresh(intruder)
    assert intruder.media_path is None


def test_deleting_a_post_never_removes_media_linked_elsewhere(
    client: TestClient,
    db_session: Session,
    make_post: Callable[..., Post],
    storage,
    device_headers: dict[str, str],
    other_device_headers: dict[str, str],
) -> None:
    _upload_gallery_photo(client, device_headers, "uploads/chuppah.jpg")
    # A row written before ownership checks existed may still name the path.
    stray = make_post(device_id="device-bbbb", media_path="uploads/chuppah.jpg")

    response = client.delete(f"/api/v1/posts/{stray.id}", headers=other_device_headers)

    assert response.status_code == 204
    item = db_session.scalar(
        select(MediaItem).where(MediaItem.storage_path == "uploads/chuppah.jpg")
    )
    assert item.deleted_at is None
    assert storage.removed == []


def test_moderation_outage_publishes_blessing(
    client: TestClient,
    db_session: Session,
    moderation_provider,
    device_headers: dict[str, str],
) -> None:
    moderation_provider.fail = True

    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "I hate to miss this, mazal tov!"},
        headers=device_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "approved"
    assert data["flagged"] is False
    post = db_session.get(Post, data["post"]["id"])
    assert post.moderation_flagged is False
    assert moderation_provider.calls == ["I hate to miss this, mazal tov!"]


def _gallery_upload(client: TestClient, headers: dict[str, str], gallery_id: int):
    return client.post(
        POSTS_URL,
        json={
            "kind": "gallery",
            "media_url": "https://cdn.example/uploads/toast.jpg",
            "gallery_id": gallery_id,
        },
        headers=headers,
    )


def test_gallery_upload_inside_open_window_is_published(
    client: TestClient,
    make_gallery: Callable[..., Gallery],
    device_headers: dict[str, str],
) -> None:
    gallery = make_gallery(auto_approve_until=utcnow() + timedelta(hours=2))

    response = _gallery_upload(client, device_headers, gallery.id)

    assert response.status_code == 201
    assert response.json()["status"] == "approved"
    assert response.json()["post"]["gallery_id"] == gallery.id


def test_gallery_upload_after_window_waits_for_review(
    client: TestClient,
    make_gallery: Callable[..., Gallery],
    device_headers: dict[str, str],
) -> None:
    gallery = make_gallery(auto_approve_until=utcnow() - timedelta(minutes=5))

    response = _gallery_upload(client, device_headers, gallery.id)

    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert response.json()["pending_reason"] == "gallery_window"


def test_gallery_upload_refused_when_uploads_are_off(
    client: TestClient,
    make_gallery: Callable[..., Gallery],
    device_headers: dict[str, str],
) -> None:
    gallery = make_gallery(upload_enabled=False)

    response = _gallery_upload(client, device_headers, gallery.id)

    assert response.status_code == 403


def test_gallery_upload_to_unknown_gallery(
    client: TestClient,
    device_headers: dict[str, str],
) -> None:
    assert _gallery_upload(client, device_headers, 9999).status_code == 404


def test_blessings_cannot_name_a_gallery(
    client: TestClient,
    make_gallery: Callable[..., Gallery],
    device_headers: dict[str, str],
) -> None:
    gallery = make_gallery()
    response = client.post(
        POSTS_URL,
        json={"kind": "blessing", "text": "Hi", "gallery_id": gallery.id},
        headers=device_headers,
    )
    assert response.status_code == 400


def test_feed_filters_by_gallery(
    client: TestClient,
    make_post: Callable[..., Post],
    make_gallery: Callable[..., Gallery],
) -> None:
    dance = make_gallery()
    ceremony = make_gallery(title="Ceremony")
    in_dance = make_post(kind="gallery", media_url="https://cdn.example/a.jpg", gallery_id=dance.id)
    make_post(kind="gallery", media_url="https://cdn.example/b.jpg", gallery_id=ceremony.id)

    response = client.get(
        "/api/v1/posts/feed",
        params={"kind": "gallery", "gallery_id": dance.id},
    )

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [in_dance.id]
    assert response.json()[0]["gallery_id"] == dance.id
