import os
import sys
from datetime import datetime, timezone
from unittest.mock import patch

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Override env vars for testing
os.environ["SECRET_KEY"] = "test-secret"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["FLASK_ENV"] = "testing"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["COMPLIANCE_TIMEZONE"] = "UTC"
os.environ["RATELIMIT_ENABLED"] = "false"
os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")


sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from app.auth import create_access_token
from app.extensions import db
from app.models import (
    Volunteer, JoinRequest, JoinRequestStatus, Student, SubjectQuota, Lecture
)
from app.utils.week_window import compute_report_window

flask_app = create_app()

# Wednesday; the trailing compliance week is Sat 2026-10-03 .. Fri 2026-10-09 (UTC)
FIXED_NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)
IN_WINDOW = datetime(2026, 10, 5, 10, 0)


@pytest.fixture
def app():
    """Provide the Flask app instance for tests."""
    flask_app.config.update(
        TESTING=True,
        ENV="testing",
    )
    yield flask_app


@pytest.fixture
def client(app):
    ctx = app.app_context()
    ctx.push()
    db.create_all()
    client = app.test_client()
    yield client
    db.session.remove()
    db.drop_all()
    ctx.pop()


@pytest.fixture
def window():
    """Compliance window for FIXED_NOW."""
    return compute_report_window(FIXED_NOW, "UTC")


@pytest.fixture
def frozen_clock():
    """Pin the clock used by request handlers to FIXED_NOW."""
    with patch("app.utils.week_window.utc_now", return_value=FIXED_NOW):
        yield FIXED_NOW


@pytest.fixture
def make_volunteer(client):
    """
    Factory for volunteers with a membership record and an optional roster.

    ``students`` is a list of dicts: {"name", "email", "grade", "subjects": {name: min_lectures}}.
    """
    def _make(email, name="Volunteer", approved=True, students=None, password="secret123"):
        volunteer = Volunteer(
            email=email,
            name=name,
            role="user",
            password_hash=generate_password_hash(password),
        )
        for entry in students or []:
            volunteer.students.append(Student(
                name=entry["name"],
                email=entry["email"],
                phone="0100000000",
                grade=entry.get("grade"),
                subjects=[
                    SubjectQuota(name=subject, min_lectures=minimum)
                    for subject, minimum in entry.get("subjects", {}).items()
                ],
            ))
        db.session.add(volunteer)
        db.session.add(JoinRequest(
            name=name,
            email=email,
            phone="0100000000",
            status=JoinRequestStatus.APPROVED if approved else JoinRequestStatus.PENDING,
        ))
        db.session.commit()
        return volunteer
    return _make


@pytest.fixture
def add_lecture():
    """Append a lecture straight to a volunteer's log."""
    def _add(volunteer, subject, student_email, lecture_date=IN_WINDOW, created_at=None):
        lecture = Lecture(
            name=f"{subject} lesson",
            link="https://drive.example.com/lesson",
            subject=subject,
            student_email=student_email,
            lecture_date=lecture_date,
            created_at=created_at or lecture_date or IN_WINDOW,
            duration=1,
        )
        volunteer.lectures.append(lecture)
        db.session.commit()
        return lecture
    return _add


@pytest.fixture
def admin_user(client):
    admin = Volunteer(
        email="admin@example.com",
        name="Admin",
        role="admin",
        password_hash=generate_password_hash("admin-pass"),
    )
    db.session.add(admin)
    db.session.commit()
    return admin


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {create_access_token(admin_user)}"}


@pytest.fixture
def auth_headers(app):
    """Build bearer headers for any user."""
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}
    return _headers
