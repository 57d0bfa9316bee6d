"""
Tests for the weekly scheduler wiring and job.
"""

from unittest.mock import MagicMock, patch

from app.models import Notification, WeeklyReport
from app.scheduled_tasks import weekly_low_lecture_check_job, init_scheduled_tasks


def _short_volunteer(make_volunteer):
    return make_volunteer("ali@example.com", students=[{
        "name": "Sara",
        "email": "sara@example.com",
        "subjects": {"math": 1},
    }])


def test_job_runs_scheduled_mode_and_commits(client, make_volunteer, frozen_clock):
    volunteer = _short_volunteer(make_volunteer)

    report = weekly_low_lecture_check_job()

    assert report.members_with_low_lectures == 1
    assert WeeklyReport.query.one().week_start.isoformat() == "2026-10-03T00:00:00"
    assert Notification.query.filter_by(volunteer_id=volunteer.id).count() == 1
    assert volunteer.low_lecture_week_count == 1


def test_job_logs_and_swallows_errors(client, make_volunteer, frozen_clock):
    _short_volunteer(make_volunteer)

    with patch("app.lecture_compliance.save_weekly_report", side_effect=RuntimeError("disk full")):
        result = weekly_low_lecture_check_job()

    assert result is None
    assert WeeklyReport.query.count() == 0
    # Side effects from the failed run are rolled back
    assert Notification.query.count() == 0


def test_init_registers_weekly_cron_job(app):
    fake_scheduler = MagicMock()
    fake_scheduler.running = False

    with patch("app.extensions.scheduler", fake_scheduler):
        init_scheduled_tasks(app)

    fake_scheduler.add_job.assert_called_once()
    kwargs = fake_scheduler.add_job.call_args.kwargs
    assert kwargs["trigger"] == "cron"
    assert kwargs["day_of_week"] == "sat"
    assert kwargs["hour"] == 0
    assert kwargs["minute"] == 0
    assert kwargs["timezone"] == app.config["COMPLIANCE_TIMEZONE"]
    assert kwargs["id"] == "weekly_low_lecture_check"
    assert kwargs["max_instances"] == 1
    fake_scheduler.start.assert_called_once()


def test_init_skips_running_scheduler(app):
    fake_scheduler = MagicMock()
    fake_scheduler.running = True

    with patch("app.extensions.scheduler", fake_scheduler):
        init_scheduled_tasks(app)

    fake_scheduler.add_job.assert_not_called()
    fake_scheduler.start.assert_not_called()
