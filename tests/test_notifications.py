"""Tests for the notifications feed."""

from datetime import datetime, timedelta, timezone

from viao.extensions import db
from viao.models.notification import Notification


def add_notification(user_id, title, minutes_ago, read=False):
    created = datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)
    notification = Notification(
        user_id=user_id,
        type="BOOST_ACTIVATED",
        title=title,
        created_at=created,
        read_at=created if read else None,
    )
    db.session.add(notification)
    db.session.commit()
    return notification.id


class TestListNotifications:
    """GET /api/notifications"""

    def test_requires_login(self, client, seed_data):
        assert client.get("/api/notifications").status_code == 401

    def test_newest_first_with_unread_count(self, client, seed_data, login):
        user_id = seed_data["organizer_id"]
        old = add_notification(user_id, "Old", 60, read=True)
        new = add_notification(user_id, "New", 1)
        add_notification(seed_data["member_id"], "Not yours", 5)

        login(client, user_id)
        data = client.get("/api/notifications").get_json()
        assert [n["id"] for n in data["notifications"]] == [new, old]
        assert data["unreadCount"] == 1

    def test_limit(self, client, seed_data, login):
        user_id = seed_data["organizer_id"]
        for i in range(3):
            add_notification(user_id, f"n{i}", i)

        login(client, user_id)
        data = client.get("/api/notifications?limit=2").get_json()
        assert len(data["notifications"]) == 2


class TestMarkNotifications:
    """POST /api/notifications"""

    def test_mark_selected(self, client, seed_data, login):
        user_id = seed_data["organizer_id"]
        first = add_notification(user_id, "First", 10)
        second = add_notification(user_id, "Second", 5)

        login(client, user_id)
        resp = client.post("/api/notifications", json={"ids": [first]})
        assert resp.status_code == 200
        assert resp.get_json()["success"] is True

        assert db.session.get(Notification, first).read_at is not None
        assert db.session.get(Notification, second).read_at is None

    def test_mark_all_only_touches_own(self, client, seed_data, login):
        mine = add_notification(seed_data["organizer_id"], "Mine", 10)
        theirs = add_notification(seed_data["member_id"], "Theirs", 10)

        login(client, seed_data["organizer_id"])
        client.post("/api/notifications", json={"markAll": True})

        assert db.session.get(Notification, mine).read_at is not None
        assert db.session.get(Notification, theirs).read_at is None

    def test_invalid_payloads(self, client, seed_data, login):
        login(client, seed_data["organizer_id"])
        for payload in ({"ids": "abc"}, {"ids": [1, 2]}, {"markAll": "yes"}):
            resp = client.post("/api/notifications", json=payload)
            assert resp.status_code == 400
        resp = client.post(
            "/api/notifications", data="not json", content_type="text/plain"
        )
        assert resp.status_code == 400
