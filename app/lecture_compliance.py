"""
Weekly lecture-compliance check.

Scans every volunteer, counts the lectures each student received per subject
during the compliance week, and stores one WeeklyReport per week listing the
volunteers with at least one student under quota.

Two modes:
- scheduled (the weekly job): also creates low-lecture notifications and
  updates each volunteer's low-lecture week streak.
- lazy (triggered by a read): computes and stores the same report content but
  leaves notifications and streaks untouched.

Functions here flush but never commit; the caller owns the transaction.
"""

import logging

from sqlalchemy.dialects import postgresql, sqlite

from app.extensions import db
from app.models import (
    Volunteer, JoinRequest, JoinRequestStatus, Notification, NotificationType,
    WeeklyReport, FlaggedMember, _utc_now
)
from app.utils.errors import NotFoundError
from app.utils.helpers import format_utc_iso, normalize_email, parse_record_id
from app.utils.week_window import current_report_window

logger = logging.getLogger(__name__)

UNSPECIFIED_ACADEMIC_LEVEL = 'unspecified'
MISSING_STUDENT_NAME = 'Name not available'

# Dialects whose INSERT supports ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


# -------------------- SHORTFALL DETECTION --------------------

def count_delivered_lectures(lectures, student_email, subject, window):
    """
    Count lectures for one (student, subject) pair inside the window.

    Student emails match case-insensitively; subject names must match exactly.
    """
    target_email = normalize_email(student_email)
    return sum(
        1 for lecture in lectures
        if normalize_email(lecture.student_email) == target_email
        and lecture.subject == subject
        and window.contains(lecture.effective_date)
    )


def find_under_target_students(volunteer, window):
    """
    Return the volunteer's students that fell short of at least one quota.

    Each entry carries only the subjects that were short, with the required
    and delivered counts. Students without quotas are skipped.
    """
    under_target = []
    for student in volunteer.students:
        if not student.subjects:
            logger.debug(f"Student {student.email} of {volunteer.email} has no subjects")
            continue

        short_subjects = []
        for quota in student.subjects:
            delivered = count_delivered_lectures(volunteer.lectures, student.email, quota.name, window)
            if delivered < quota.min_lectures:
                short_subjects.append({
                    'name': quota.name,
                    'minLectures': quota.min_lectures,
                    'deliveredLectures': delivered,
                })

        if short_subjects:
            under_target.append({
                'studentName': student.name or MISSING_STUDENT_NAME,
                'studentEmail': normalize_email(student.email),
                'academicLevel': student.grade or UNSPECIFIED_ACADEMIC_LEVEL,
                'underTargetSubjects': short_subjects,
            })
    return under_target


def snapshot_lectures(volunteer):
    """Copy of the volunteer's full lecture log for display without re-joining."""
    return [
        {
            'id': lecture.id,
            'name': lecture.name,
            'subject': lecture.subject,
            'studentEmail': lecture.student_email,
            'link': lecture.link,
            'createdAt': format_utc_iso(lecture.created_at),
            'lectureDate': format_utc_iso(lecture.effective_date),
            'duration': lecture.duration or 1,
        }
        for lecture in volunteer.lectures
    ]


# -------------------- SCHEDULED-MODE SIDE EFFECTS --------------------

def ensure_low_lecture_notification(volunteer, student_entry, subject_entry):
    """
    Create the unread low-lecture notice for (volunteer, student, subject) unless one exists.

    Returns True when a notification was created.
    """
    existing = Notification.query.filter_by(
        volunteer_id=volunteer.id,
        type=NotificationType.LOW_LECTURE_COUNT_PER_SUBJECT,
        student_email=student_entry['studentEmail'],
        subject=subject_entry['name'],
        read=False,
    ).first()
    if existing:
        return False

    delivered = subject_entry['deliveredLectures']
    required = subject_entry['minLectures']
    db.session.add(Notification(
        volunteer_id=volunteer.id,
        type=NotificationType.LOW_LECTURE_COUNT_PER_SUBJECT,
        message=(
            f"Weekly lectures for student {student_entry['studentName']} in subject "
            f"{subject_entry['name']} are below the minimum ({delivered}/{required})"
        ),
        student_email=student_entry['studentEmail'],
        subject=subject_entry['name'],
        min_lectures=required,
        current_lectures=delivered,
    ))
    logger.info(
        f"Created low lecture notification for {volunteer.email}: "
        f"{student_entry['studentEmail']} / {subject_entry['name']} ({delivered}/{required})"
    )
    return True


def record_flagged_week(volunteer, window):
    """Increment the streak once per week; repeat runs for the same week are no-ops."""
    last_flagged = volunteer.last_low_lecture_week
    if last_flagged is not None and last_flagged >= window.start_utc:
        return False
    volunteer.low_lecture_week_count = (volunteer.low_lecture_week_count or 0) + 1
    volunteer.last_low_lecture_week = window.start_utc
    logger.info(f"Incremented low lecture week count for {volunteer.email}: {volunteer.low_lecture_week_count}")
    return True


def reset_streak(volunteer):
    """Clear the streak, skipping the write when it is already zero."""
    if not volunteer.low_lecture_week_count:
        return False
    volunteer.low_lecture_week_count = 0
    volunteer.last_low_lecture_week = None
    logger.info(f"Reset low lecture week count for {volunteer.email} to 0")
    return True


# -------------------- REPORT STORAGE --------------------

def _upsert_report_row(values):
    """Insert the report row for ``values['week_start']`` or overwrite the existing one."""
    dialect = db.session.get_bind().dialect.name
    insert_factory = _UPSERT_INSERTS.get(dialect)

    if insert_factory is not None:
        stmt = insert_factory(WeeklyReport.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[WeeklyReport.__table__.c.week_start],
            set_={key: stmt.excluded[key] for key in values if key != 'week_start'},
        )
        db.session.execute(stmt)
        return

    report = WeeklyReport.query.filter_by(week_start=values['week_start']).first()
    if report is None:
        db.session.add(WeeklyReport(**values))
    else:
        for key, value in values.items():
            setattr(report, key, value)
    db.session.flush()


def save_weekly_report(window, members, total_users_processed):
    """
    Persist the report for ``window``, replacing any earlier member list for that week.

    Args:
        window: ReportWindow the members were computed for.
        members: FlaggedMember column dicts (without report_id).
        total_users_processed: Number of volunteers scanned.

    Returns:
        The stored WeeklyReport.
    """
    _upsert_report_row({
        'week_start': window.start_utc,
        'week_end': window.end_utc,
        'total_users_processed': total_users_processed,
        'members_with_low_lectures': len(members),
        'created_at': _utc_now(),
    })

    report = WeeklyReport.query.filter_by(week_start=window.start_utc).one()
    db.session.refresh(report)

    # Old rows must be gone before new ones reuse (report_id, volunteer_id)
    report.members.clear()
    db.session.flush()
    report.members.extend(FlaggedMember(**member) for member in members)
    db.session.flush()

    logger.info(f"Saved low lecture report for week starting {window.start_utc:%Y-%m-%d}: {len(members)} members")
    return report


# -------------------- AGGREGATION --------------------

def _approved_members_by_email():
    approved = JoinRequest.query.filter_by(status=JoinRequestStatus.APPROVED).all()
    return {normalize_email(member.email): member for member in approved}


def check_low_lecture_members(scheduled=False, window=None):
    """
    Compute and store the low-lecture report for one compliance week.

    Safe to call repeatedly for the same week: the stored member list is
    replaced, notifications are never duplicated and a streak increases at
    most once per week.

    Args:
        scheduled: True when run by the weekly job. Enables notifications and
            streak updates; lazy runs only compute and store the report.
        window: ReportWindow to evaluate. Defaults to the current one.

    Returns:
        WeeklyReport: The stored report (flushed, not committed).
    """
    if window is None:
        window = current_report_window()

    mode = 'scheduled' if scheduled else 'lazy'
    logger.info(
        f"Checking lectures ({mode}) from {format_utc_iso(window.start)} to {format_utc_iso(window.end)}"
    )

    volunteers = Volunteer.query.filter_by(role='user').order_by(Volunteer.id).all()
    approved_members = _approved_members_by_email()
    flagged = []

    for volunteer in volunteers:
        membership = approved_members.get(normalize_email(volunteer.email))
        if membership is None:
            logger.debug(f"Skipping {volunteer.email}: no approved join request")
            if scheduled:
                reset_streak(volunteer)
            continue

        if not volunteer.students:
            logger.debug(f"Skipping {volunteer.email}: no students")
            if scheduled:
                reset_streak(volunteer)
            continue

        under_target = find_under_target_students(volunteer, window)
        if not under_target:
            logger.debug(f"{volunteer.email} meets all requirements")
            if scheduled:
                reset_streak(volunteer)
            continue

        if scheduled:
            for student_entry in under_target:
                for subject_entry in student_entry['underTargetSubjects']:
                    ensure_low_lecture_notification(volunteer, student_entry, subject_entry)
            record_flagged_week(volunteer, window)

        flagged.append({
            'volunteer_id': volunteer.id,
            'name': membership.name or volunteer.email,
            'email': volunteer.email,
            'low_lecture_week_count': volunteer.low_lecture_week_count or 0,
            'under_target_students': under_target,
            'lectures': snapshot_lectures(volunteer),
        })

    report = save_weekly_report(window, flagged, total_users_processed=len(volunteers))
    logger.info(f"Low lecture check ({mode}) finished: {len(flagged)} of {len(volunteers)} members flagged")
    return report


# -------------------- REPORT ACCESS --------------------

def get_or_generate_report(window=None):
    """Return the stored report for the week, generating it lazily when missing."""
    if window is None:
        window = current_report_window()

    report = WeeklyReport.query.filter_by(week_start=window.start_utc).first()
    if report is None:
        logger.info(f"No report found for week starting {format_utc_iso(window.start)}, generating")
        report = check_low_lecture_members(scheduled=False, window=window)
    return report


def parse_member_id(raw_id):
    """Validate a member id from a URL. Raises ValidationError unless it is a positive integer."""
    return parse_record_id(raw_id, 'Invalid member ID')


def remove_flagged_member(raw_member_id, window=None):
    """
    Drop one volunteer from the week's report.

    Only the report snapshot changes; the volunteer's live streak is untouched.

    Raises:
        ValidationError: Malformed member id.
        NotFoundError: The member is not in the week's report.
    """
    volunteer_id = parse_member_id(raw_member_id)
    report = get_or_generate_report(window)

    member = next((m for m in report.members if m.volunteer_id == volunteer_id), None)
    if member is None:
        raise NotFoundError('Member not found in low lecture report')

    report.members.remove(member)
    report.members_with_low_lectures = len(report.members)
    db.session.flush()
    logger.info(f"Member {volunteer_id} removed from low lecture report for week starting {report.week_start:%Y-%m-%d}")
    return report


def build_report_payload(report):
    """JSON body for the report endpoint."""
    count = len(report.members)
    return {
        'success': True,
        'message': (
            f'Found {count} members with low lecture counts'
            if count else 'All members meet the minimum weekly lecture requirements'
        ),
        'members': [member.to_dict() for member in report.members],
        'debug': {
            'totalUsersProcessed': report.total_users_processed,
            'weekStart': format_utc_iso(report.week_start),
            'weekEnd': format_utc_iso(report.week_end),
            'membersWithLowLectures': report.members_with_low_lectures,
        },
    }
