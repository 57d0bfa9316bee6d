from datetime import datetime

from app.extensions import db
from app.models import Notification, NotificationType


def _notify(volunteer, message="Lecture added", read=False, created_at=None, **details):
    notification = Notification(
        volunteer_id=volunteer.id,
        type=details.pop("type", NotificationType.LECTURE_ADDED),
        message=message,
        read=read,
        created_at=created_at or datetime(2026, 10, 5, 10, 0),
        **details,
    )
    db.session.add(notification)
    db.session.commit()
    return notification


def test_list_only_own_notifications_newest_first(client, make_volunteer, auth_headers):
    ali = make_volunteer("ali@example.com")
    huda = make_volunteer("huda@example.com")
    older = _notify(ali, "older", created_at=datetime(2026, 10, 1, 9, 0))
    newer = _notify(
        ali, "newer",
        type=NotificationType.LOW_LECTURE_COUNT_PER_SUBJECT,
        created_at=datetime(2026, 10, 2, 9, 0),
        student_email="sara@example.com",
        subject="math",
        min_lectures=2,
        current_lectures=1,
    )
    _notify(huda, "someone else's")

    resp = client.get('/api/lectures/notifications', headers=auth_headers(ali))

    assert resp.status_code == 200
    notifications = resp.json["notifications"]
    assert [n["id"] for n in notifications] == [newer.id, older.id]
    assert notifications[0]["type"] == "low_lecture_count_per_subject"
    assert notifications[0]["lectureDetails"]["minLectures"] == 2
    assert notifications[0]["lectureDetails"]["currentLectures"] == 1
    assert notifications[0]["createdAt"] == "2026-10-02T09:00:00Z"


def test_mark_read(client, make_volunteer, auth_headers):
    ali = make_volunteer("ali@example.com")
    huda = make_volunteer("huda@example.com")
    _notify(ali)
    _notify(ali)
    theirs = _notify(huda)

    resp = client.post('/api/lectures/notifications/mark-read', headers=auth_headers(ali))

    assert resp.status_code == 200
    assert all(n["read"] for n in resp.json["notifications"])
    assert db.session.get(Notification, theirs.id).read is False


def test_delete_own_notification(client, make_volunteer, auth_headers):
    ali = make_volunteer("ali@example.com")
    notification = _notify(ali)

    resp = client.delete(f'/api/lectures/notifications/{notification.id}', headers=auth_headers(ali))

    assert resp.status_code == 200
    assert Notification.query.count() == 0


def test_cannot_delete_another_users_notification(client, make_volunteer, auth_headers):
    ali = make_volunteer("ali@example.com")
    huda = make_volunteer("huda@example.com")
    notification = _notify(huda)

    resp = client.delete(f'/api/lectures/notifications/{notification.id}', headers=auth_headers(ali))

    assert resp.status_code == 404
    assert resp.json["message"] == "Notification not found or does not belong to user"
    assert Notification.query.count() == 1


def test_delete_notification_with_invalid_id(client, make_volunteer, auth_headers):
    ali = make_volunteer("ali@example.com")
    resp = client.delete('/api/lectures/notifications/abc', headers=auth_headers(ali))
    assert resp.status_code == 400
    assert resp.json["message"] == "Invalid notification ID"
