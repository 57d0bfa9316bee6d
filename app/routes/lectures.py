"""
Lecture routes for the volunteer hub.

Lecture submission and review, the lecture log, per-volunteer notifications,
and the weekly low-lecture report.
"""

from flask import Blueprint, request, jsonify, current_app, g

from app.extensions import db
from app.models import (
    Volunteer, JoinRequest, Lecture, LectureRequest, LectureRequestStatus,
    Notification, NotificationType, _utc_now
)
from app.auth import token_required, admin_required
from app.lecture_compliance import (
    get_or_generate_report, remove_flagged_member, build_report_payload
)
from app.utils.errors import ValidationError, NotFoundError
from app.utils.helpers import (
    normalize_email, is_valid_email, is_valid_url, is_length_between,
    parse_iso_datetime, format_utc_iso, commit_session, parse_record_id
)
from app.utils.week_window import current_report_window

# Create blueprint
lectures_bp = Blueprint('lectures', __name__, url_prefix='/api/lectures')


def _parse_id(raw_id, label):
    return parse_record_id(raw_id, f'Invalid {label} ID')


def _membership_for(volunteer):
    membership = JoinRequest.query.filter_by(email=normalize_email(volunteer.email)).first()
    if not membership:
        raise NotFoundError('Join request not found')
    return membership


def _has_student(volunteer, student_email):
    return any(normalize_email(s.email) == student_email for s in volunteer.students)


# -------------------- LECTURE REQUESTS --------------------

@lectures_bp.route('', methods=['POST'])
@token_required
def submit_lecture():
    """Volunteer submits a delivered lecture for admin review."""
    data = request.get_json(silent=True) or {}
    required = ('link', 'name', 'subject', 'studentEmail', 'lectureDate', 'duration')
    if any(not data.get(field) for field in required):
        raise ValidationError('Lecture link, name, subject, student email, date, and duration are required')

    if not is_valid_url(data['link']):
        raise ValidationError('Invalid lecture link')
    if not is_length_between(data['name'], 1, 100):
        raise ValidationError('Lecture name must be between 1 and 100 characters')
    if not is_length_between(data['subject'], 1, 100):
        raise ValidationError('Subject name must be between 1 and 100 characters')

    student_email = normalize_email(data['studentEmail'])
    if not is_valid_email(student_email):
        raise ValidationError('Invalid student email')

    lecture_date = parse_iso_datetime(data['lectureDate'])
    if lecture_date is None:
        raise ValidationError('Invalid lecture date')

    try:
        duration = float(data['duration'])
    except (TypeError, ValueError):
        duration = 0
    if duration <= 0:
        raise ValidationError('Duration must be a positive number')

    volunteer = db.session.get(Volunteer, g.current_user_id)
    if not volunteer:
        raise NotFoundError('User not found')
    if not _has_student(volunteer, student_email):
        raise ValidationError('Student not found')

    lecture_request = LectureRequest(
        volunteer_id=volunteer.id,
        link=data['link'].strip(),
        name=data['name'],
        subject=data['subject'],
        student_email=student_email,
        lecture_date=lecture_date,
        duration=duration,
    )
    db.session.add(lecture_request)
    commit_session('lecture request')

    current_app.logger.info(f"Lecture request {lecture_request.id} submitted by {volunteer.email}")
    return jsonify({
        'success': True,
        'message': 'Lecture request submitted for review',
        'requestId': lecture_request.id,
    }), 201


@lectures_bp.route('/requests', methods=['GET'])
@admin_required
def list_lecture_requests():
    """Pending lecture requests, newest first."""
    pending = (
        LectureRequest.query
        .filter_by(status=LectureRequestStatus.PENDING)
        .order_by(LectureRequest.created_at.desc(), LectureRequest.id.desc())
        .all()
    )
    return jsonify({
        'success': True,
        'requests': [
            {
                'id': req.id,
                'userId': req.volunteer_id,
                'userEmail': req.volunteer.email if req.volunteer else None,
                'link': req.link,
                'name': req.name,
                'subject': req.subject,
                'studentEmail': req.student_email,
                'lectureDate': format_utc_iso(req.lecture_date),
                'duration': req.duration,
                'status': req.status.value,
                'createdAt': format_utc_iso(req.created_at),
            }
            for req in pending
        ],
    })


def _pending_request(raw_id):
    request_id = _parse_id(raw_id, 'request')
    lecture_request = db.session.get(LectureRequest, request_id)
    if not lecture_request or lecture_request.status != LectureRequestStatus.PENDING:
        raise NotFoundError('Pending lecture request not found')
    return lecture_request


@lectures_bp.route('/requests/<request_id>/accept', methods=['POST'])
@admin_required
def accept_lecture_request(request_id):
    """
    Append the requested lecture to the volunteer's log.

    Bumps the volunteer's lecture count and membership hours, clears open
    low-lecture notices for that student and subject, and notifies the volunteer.
    """
    lecture_request = _pending_request(request_id)
    volunteer = lecture_request.volunteer
    if not volunteer:
        raise NotFoundError('User not found')
    if not _has_student(volunteer, lecture_request.student_email):
        raise ValidationError('Student not found')
    membership = _membership_for(volunteer)

    lecture = Lecture(
        link=lecture_request.link,
        name=lecture_request.name,
        subject=lecture_request.subject,
        student_email=lecture_request.student_email,
        lecture_date=lecture_request.lecture_date,
        duration=lecture_request.duration,
        created_at=lecture_request.created_at,
    )
    volunteer.lectures.append(lecture)
    volunteer.lecture_count = (volunteer.lecture_count or 0) + 1
    membership.volunteer_hours = (membership.volunteer_hours or 0) + 1

    Notification.query.filter_by(
        volunteer_id=volunteer.id,
        type=NotificationType.LOW_LECTURE_COUNT_PER_SUBJECT,
        subject=lecture_request.subject,
        student_email=lecture_request.student_email,
    ).delete(synchronize_session=False)

    db.session.add(Notification(
        volunteer_id=volunteer.id,
        type=NotificationType.LECTURE_ADDED,
        message=(
            f"New lecture added by {volunteer.email}: {lecture_request.name} "
            f"({lecture_request.subject}) - {lecture_request.link}"
        ),
        student_email=lecture_request.student_email,
        subject=lecture_request.subject,
        lecture_name=lecture_request.name,
        lecture_link=lecture_request.link,
    ))

    lecture_request.status = LectureRequestStatus.ACCEPTED
    lecture_request.admin_action_at = _utc_now()
    commit_session('accepted lecture request')

    current_app.logger.info(
        f"Lecture request {lecture_request.id} accepted: lecture {lecture.id} for {volunteer.email}"
    )
    return jsonify({
        'success': True,
        'message': 'Lecture request accepted',
        'lectureId': lecture.id,
        'lectureCount': volunteer.lecture_count,
        'volunteerHours': membership.volunteer_hours,
    })


@lectures_bp.route('/requests/<request_id>/reject', methods=['POST'])
@admin_required
def reject_lecture_request(request_id):
    lecture_request = _pending_request(request_id)
    data = request.get_json(silent=True) or {}

    lecture_request.status = LectureRequestStatus.REJECTED
    lecture_request.admin_action_at = _utc_now()
    lecture_request.admin_note = data.get('note') or ''
    commit_session('rejected lecture request')

    current_app.logger.info(f"Lecture request {lecture_request.id} rejected")
    return jsonify({'success': True, 'message': 'Lecture request rejected'})


# -------------------- NOTIFICATIONS --------------------

def _notification_dict(notification):
    return {
        'id': notification.id,
        'userId': notification.volunteer_id,
        'message': notification.message,
        'type': notification.type.value,
        'createdAt': format_utc_iso(notification.created_at),
        'read': notification.read,
        'lectureDetails': {
            'studentEmail': notification.student_email,
            'subject': notification.subject,
            'minLectures': notification.min_lectures,
            'currentLectures': notification.current_lectures,
            'name': notification.lecture_name,
            'link': notification.lecture_link,
        },
    }


def _notifications_for_current_user():
    return (
        Notification.query
        .filter_by(volunteer_id=g.current_user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .all()
    )


@lectures_bp.route('/notifications', methods=['GET'])
@token_required
def list_notifications():
    notifications = _notifications_for_current_user()
    return jsonify({
        'success': True,
        'message': 'Notifications fetched successfully',
        'notifications': [_notification_dict(n) for n in notifications],
    })


@lectures_bp.route('/notifications/mark-read', methods=['POST'])
@token_required
def mark_notifications_read():
    updated = Notification.query.filter_by(
        volunteer_id=g.current_user_id, read=False
    ).update({'read': True}, synchronize_session='fetch')
    commit_session('notification read flags')

    current_app.logger.info(f"Marked {updated} notifications read for user {g.current_user_id}")
    return jsonify({
        'success': True,
        'message': 'Notifications marked as read',
        'notifications': [_notification_dict(n) for n in _notifications_for_current_user()],
    })


@lectures_bp.route('/notifications/<notification_id>', methods=['DELETE'])
@token_required
def delete_notification(notification_id):
    notification_pk = _parse_id(notification_id, 'notification')
    notification = Notification.query.filter_by(
        id=notification_pk, volunteer_id=g.current_user_id
    ).first()
    if not notification:
        raise NotFoundError('Notification not found or does not belong to user')

    db.session.delete(notification)
    commit_session('notification deletion')
    return jsonify({'success': True, 'message': 'Notification deleted successfully'})


# -------------------- LOW LECTURE REPORT --------------------

@lectures_bp.route('/low-lecture-members', methods=['GET'])
@admin_required
def low_lecture_members():
    """Current week's low-lecture report, generated on first read."""
    window = current_report_window()
    report = get_or_generate_report(window)
    commit_session('low lecture report')

    current_app.logger.info(
        f"Returning low lecture report for week starting {format_utc_iso(report.week_start)}: "
        f"{len(report.members)} members"
    )
    return jsonify(build_report_payload(report))


@lectures_bp.route('/low-lecture-members/<member_id>', methods=['DELETE'])
@admin_required
def delete_low_lecture_member(member_id):
    """Acknowledge one flagged member by removing them from this week's report."""
    remove_flagged_member(member_id, current_report_window())
    commit_session('low lecture report member removal')
    return jsonify({
        'success': True,
        'message': "Member successfully removed from this week's low lecture report",
    })


# -------------------- LECTURE LOG --------------------

@lectures_bp.route('/<lecture_id>', methods=['DELETE'])
@admin_required
def delete_lecture(lecture_id):
    """Remove a lecture from its volunteer's log and roll back the counters it added."""
    lecture_pk = _parse_id(lecture_id, 'lecture')
    lecture = db.session.get(Lecture, lecture_pk)
    if not lecture:
        raise NotFoundError('Lecture not found')

    volunteer = lecture.volunteer
    membership = _membership_for(volunteer)

    volunteer.lectures.remove(lecture)
    volunteer.lecture_count = max(0, (volunteer.lecture_count or 0) - 1)
    membership.volunteer_hours = max(0, (membership.volunteer_hours or 0) - 1)
    commit_session('lecture deletion')

    current_app.logger.info(f"Lecture {lecture_pk} deleted for {volunteer.email}")
    return jsonify({
        'success': True,
        'message': 'Lecture deleted successfully',
        'lectureCount': volunteer.lecture_count,
        'volunteerHours': membership.volunteer_hours,
    })
