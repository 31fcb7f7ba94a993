"""API tests for the admin console."""

from collections.abc import Callable
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from event_gift.db.time import ensure_utc, utcnow
from event_gift.models import AdminUser, Gallery, MediaItem, Post

ADMIN_URL = "/api/v1/admin"


class TestAdminAuth:
    def test_missing_token(self, client: TestClient) -> None:
        response = client.get(f"{ADMIN_URL}/posts")
        assert response.status_code in {401, 403}

    def test_bad_token(self, client: TestClient) -> None:
        response = client.get(f"{ADMIN_URL}/posts", headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_client_admin_limited_to_granted_permissions(
        self,
        client: TestClient,
        client_admin_headers: dict[str, str],
    ) -> None:
        assert client.get(f"{ADMIN_URL}/posts", headers=client_admin_headers).status_code == 200
        assert client.get(f"{ADMIN_URL}/settings", headers=client_admin_headers).status_code == 403
        assert client.get(f"{ADMIN_URL}/admins", headers=client_admin_headers).status_code == 403


class TestModeration:
    def test_list_filters_by_status(
        self,
        client: TestClient,
        make_post: Callable[..., Post],
        master_headers: dict[str, str],
    ) -> None:
        make_post()
        held = make_post(status="pending", pending_reason="moderation")

        response = client.get(
            f"{ADMIN_URL}/posts",
            params={"status": "pending"},
            headers=master_headers,
        )

        assert response.status_code == 200
        assert [post["id"] for post in response.json()] == [held.id]

    def test_approve_keeps_reason_as_history(
        self,
        client: TestClient,
        make_post: Callable[..., Post],
        client_admin_headers: dict[str, str],
    ) -> None:
        held = make_post(status="pending", pending_reason="approval_lock")

        response = client.patch(
            f"{ADMIN_URL}/posts/{held.id}",
            json={"status": "approved"},
            headers=client_admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"
        assert response.json()["pending_reason"] == "approval_lock"

    def test_admin_edits_ignore_edit_window(
        self,
        client: TestClient,
        make_post: Callable[..., Post],
        master_headers: dict[str, str],
    ) -> None:
        post = make_post(device_id="someone-else")

        response = client.patch(
            f"{ADMIN_URL}/posts/{post.id}",
            json={"text": "Trimmed by the organizers"},
            headers=master_headers,
        )

        assert response.status_code == 200
        assert response.json()["text"] == "Trimmed by the organizers"

    def test_deleted_posts_are_terminal(
        self,
        client: TestClient,
        make_post: Callable[..., Post],
        master_headers: dict[str, str],
    ) -> None:
        post = make_post(status="deleted")
        response = client.patch(
            f"{ADMIN_URL}/posts/{post.id}",
            json={"status": "approved"},
            headers=master_headers,
        )
        assert response.status_code == 409

    def test_empty_patch(
        self,
        client: TestClient,
        make_post: Callable[..., Post],
        master_headers: dict[str, str],
    ) -> None:
        post = make_post()
        response = client.patch(f"{ADMIN_URL}/posts/{post.id}", json={}, headers=master_headers)
        assert response.status_code == 400

    def test_unknown_post(self, client: TestClient, master_headers: dict[str, str]) -> None:
        response = client.patch(
            f"{ADMIN_URL}/posts/9999",
            json={"status": "approved"},
            headers=master_headers,
        )
        assert response.status_code == 404

    def test_create_admin_gallery_post_bypasses_approval(
        self,
        client: TestClient,
        db_session: Session,
        event_settings,
        master_headers: dict[str, str],
    ) -> None:
        event_settings.require_approval = True
        db_session.flush()

        response = client.post(
            f"{ADMIN_URL}/posts",
            json={"media_url": "https://cdn.example/official.jpg"},
            headers=master_headers,
        )

        assert response.status_code == 201
        assert response.json()["kind"] == "gallery_admin"
        assert response.json()["status"] == "approved"


class TestSettings:
    def test_read_defaults(self, client: TestClient, master_headers: dict[str, str]) -> None:
        response = client.get(f"{ADMIN_URL}/settings", headers=master_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["require_approval"] is False
        assert data["approval_lock_after_days"] == 7
        assert data["max_blessing_lines"] == 50

    def test_reopening_approvals_is_stamped(
        self,
        client: TestClient,
        master_headers: dict[str, str],
    ) -> None:
        client.put(f"{ADMIN_URL}/settings", json={"require_approval": True}, headers=master_headers)

        response = client.put(
            f"{ADMIN_URL}/settings",
            json={"require_approval": False},
            headers=master_headers,
        )

        assert response.status_code == 200
        assert response.json()["approval_opened_at"] is not None

    def test_server_managed_fields_are_rejected(
        self,
        client: TestClient,
        master_headers: dict[str, str],
    ) -> None:
        response = client.put(
            f"{ADMIN_URL}/settings",
            json={"approval_opened_at": "2024-06-01T00:00:00Z"},
            headers=master_headers,
        )
        assert response.status_code == 422


class TestContentRules:
    def test_rule_lifecycle(
        self,
        client: TestClient,
        master_headers: dict[str, str],
        device_headers: dict[str, str],
    ) -> None:
        created = client.post(
            f"{ADMIN_URL}/content-rules",
            json={
                "rule_type": "block",
                "scope": "event",
                "match_type": "whole_word",
                "expression": " spam ",
            },
            headers=master_headers,
        )
        assert created.status_code == 201
        rule = created.json()
        assert rule["match_type"] == "word"
        assert rule["expression"] == "spam"
        assert rule["event_id"] is not None

        submitted = client.post(
            "/api/v1/posts/",
            json={"kind": "blessing", "text": "buy spam now"},
            headers=device_headers,
        )
        assert submitted.json()["pending_reason"] == "blocked_rule"

        listed = client.get(f"{ADMIN_URL}/content-rules", headers=master_headers)
        assert [item["id"] for item in listed.json()] == [rule["id"]]

        updated = client.patch(
            f"{ADMIN_URL}/content-rules/{rule['id']}",
            json={"is_active": False},
            headers=master_headers,
        )
        assert updated.json()["is_active"] is False

        deleted = client.delete(f"{ADMIN_URL}/content-rules/{rule['id']}", headers=master_headers)
        assert deleted.status_code == 204
        missing = client.delete(f"{ADMIN_URL}/content-rules/{rule['id']}", headers=master_headers)
        assert missing.status_code == 404

    def test_blank_expression(self, client: TestClient, master_headers: dict[str, str]) -> None:
        created = client.post(
            f"{ADMIN_URL}/content-rules",
            json={"expression": "ok"},
            headers=master_headers,
        ).json()

        response = client.patch(
            f"{ADMIN_URL}/content-rules/{created['id']}",
            json={"expression": "   "},
            headers=master_headers,
        )

        assert response.status_code == 400


class TestMedia:
    def test_list_and_discard(
        self,
        client: TestClient,
        make_media_item: Callable[..., MediaItem],
        storage,
        master_headers: dict[str, str],
    ) -> None:
        item = make_media_item()

        active = client.get(
            f"{ADMIN_URL}/media-items",
            params={"status": "active"},
            headers=master_headers,
        )
        assert [row["id"] for row in active.json()] == [item.id]

        response = client.delete(f"{ADMIN_URL}/media-items/{item.id}", headers=master_headers)
        assert response.status_code == 200
        assert response.json()["deleted_at"] is not None
        assert storage.removed == [item.storage_path]

        deleted = client.get(
            f"{ADMIN_URL}/media-items",
            params={"status": "deleted"},
            headers=master_headers,
        )
        assert [row["id"] for row in deleted.json()] == [item.id]

    def test_unknown_state(self, client: TestClient, master_headers: dict[str, str]) -> None:
        response = client.get(
            f"{ADMIN_URL}/media-items",
            params={"status": "lost"},
            headers=master_headers,
        )
        assert response.status_code == 422

    def test_requires_gallery_permission(
        self,
        client: TestClient,
        client_admin_headers: dict[str, str],
    ) -> None:
        response = client.get(f"{ADMIN_URL}/media-items", headers=client_admin_headers)
        assert response.status_code == 403


class TestGalleries:
    def test_create_and_list(self, client: TestClient, master_headers: dict[str, str]) -> None:
        created = client.post(
            f"{ADMIN_URL}/galleries",
            json={"title": "Dance floor"},
            headers=master_headers,
        )
        assert created.status_code == 201
        assert created.json()["upload_enabled"] is False
        assert created.json()["require_approval"] is True

        listed = client.get(f"{ADMIN_URL}/galleries", headers=master_headers)
        assert [row["title"] for row in listed.json()] == ["Dance floor"]

    def test_update_switches(
        self,
        client: TestClient,
        make_gallery: Callable[..., Gallery],
        master_headers: dict[str, str],
    ) -> None:
        gallery = make_gallery()

        response = client.put(
            f"{ADMIN_URL}/galleries/{gallery.id}",
            json={"upload_enabled": False, "title": "Ceremony"},
            headers=master_headers,
        )

        assert response.status_code == 200
        assert response.json()["upload_enabled"] is False
        assert response.json()["title"] == "Ceremony"
        assert response.json()["require_approval"] is True

    def test_update_unknown_gallery(
        self,
        client: TestClient,
        master_headers: dict[str, str],
    ) -> None:
        response = client.put(
            f"{ADMIN_URL}/galleries/9999",
            json={"title": "x"},
            headers=master_headers,
        )
        assert response.status_code == 404

    def test_open_for_limited_time(
        self,
        client: TestClient,
        make_gallery: Callable[..., Gallery],
        master_headers: dict[str, str],
        device_headers: dict[str, str],
    ) -> None:
        gallery = make_gallery(upload_enabled=False)
        before = utcnow()

        response = client.post(
            f"{ADMIN_URL}/galleries/{gallery.id}/open",
            json={"hours": 500},
            headers=master_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["upload_enabled"] is True
        until = datetime.fromisoformat(data["auto_approve_until"].replace("Z", "+00:00"))
        assert ensure_utc(until) <= utcnow() + timedelta(hours=72)
        assert ensure_utc(until) >= before + timedelta(hours=71)

        upload = client.post(
            "/api/v1/posts/",
            json={
                "kind": "gallery",
                "media_url": "https://cdn.example/a.jpg",
                "gallery_id": gallery.id,
            },
            headers=device_headers,
        )
        assert upload.json()["status"] == "approved"

    def test_open_defaults_to_eight_hours(
        self,
        client: TestClient,
        make_gallery: Callable[..., Gallery],
        master_headers: dict[str, str],
    ) -> None:
        gallery = make_gallery(upload_enabled=False)
        before = utcnow()

        response = client.post(
            f"{ADMIN_URL}/galleries/{gallery.id}/open",
            json={},
            headers=master_headers,
        )

        until = datetime.fromisoformat(response.json()["auto_approve_until"].replace("Z", "+00:00"))
        assert ensure_utc(until) >= before + timedelta(hours=8)
        assert ensure_utc(until) <= utcnow() + timedelta(hours=8)

    def test_read_permission_cannot_manage(
        self,
        client: TestClient,
        db_session: Session,
        client_admin: AdminUser,
        client_admin_headers: dict[str, str],
        make_gallery: Callable[..., Gallery],
    ) -> None:
        gallery = make_gallery()
        assert client.get(f"{ADMIN_URL}/galleries", headers=client_admin_headers).status_code == 403

        client_admin.permissions = {"galleries.read": True}
        db_session.flush()

        assert client.get(f"{ADMIN_URL}/galleries", headers=client_admin_headers).status_code == 200
        response = client.post(
            f"{ADMIN_URL}/galleries/{gallery.id}/open",
            json={},
            headers=client_admin_headers,
        )
        assert response.status_code == 403


class TestAdmins:
    def test_master_grants_permissions(
        self,
        client: TestClient,
        master_admin: AdminUser,
        client_admin: AdminUser,
        master_headers: dict[str, str],
    ) -> None:
        listed = client.get(f"{ADMIN_URL}/admins", headers=master_headers)
        assert {row["email"] for row in listed.json()} == {master_admin.email, client_admin.email}

        response = client.put(
            f"{ADMIN_URL}/admins/{client_admin.id}/permissions",
            json={"permissions": {"posts.manage": True, "galleries.read": True}},
            headers=master_headers,
        )

        assert response.status_code == 200
        assert response.json()["permissions"] == {"posts.manage": True, "galleries.read": True}

    def test_unknown_permission(
        self,
        client: TestClient,
        client_admin: AdminUser,
        master_headers: dict[str, str],
    ) -> None:
        response = client.put(
            f"{ADMIN_URL}/admins/{client_admin.id}/permissions",
            json={"permissions": {"everything": True}},
            headers=master_headers,
        )
        assert response.status_code == 400

    def test_client_admin_cannot_grant(
        self,
        client: TestClient,
        master_admin: AdminUser,
        client_admin_headers: dict[str, str],
    ) -> None:
        response = client.put(
            f"{ADMIN_URL}/admins/{master_admin.id}/permissions",
            json={"permissions": {}},
            headers=client_admin_headers,
        )
        assert response.status_code == 403
