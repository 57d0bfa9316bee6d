"""
API routes for the volunteer hub.

JSON endpoints for login, the membership directory (join requests and
approved members) and roster management.
"""

import secrets

from flask import Blueprint, request, jsonify, current_app, g
from werkzeug.security import check_password_hash, generate_password_hash

from app.extensions import db, limiter
from app.models import (
    Volunteer, JoinRequest, JoinRequestStatus, Student, SubjectQuota,
    Notification, LectureRequest
)
from app.auth import token_required, admin_required, create_access_token
from app.utils.errors import ValidationError, NotFoundError, PermissionDeniedError
from app.utils.helpers import (
    normalize_email, is_valid_email, is_length_between, commit_session,
    parse_record_id, format_utc_iso
)

# Create blueprint
api_bp = Blueprint('api', __name__, url_prefix='/api')

MAX_STUDENTS = 50
UNKNOWN_STUDENT_NAME = 'Unknown'


# -------------------- AUTH API --------------------

@api_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    password = data.get('password')

    if not email or not password:
        raise ValidationError('Email and password are required')

    normalized_email = normalize_email(email)
    if not is_valid_email(normalized_email):
        raise ValidationError('Invalid email address')

    volunteer = Volunteer.query.filter_by(email=normalized_email).first()
    if not volunteer or not check_password_hash(volunteer.password_hash or '', password):
        current_app.logger.info(f"Failed login attempt for {normalized_email}")
        raise ValidationError('Invalid login credentials')

    token = create_access_token(volunteer)
    current_app.logger.info(f"Login successful for {normalized_email}")
    return jsonify({'token': token, 'userId': volunteer.id, 'role': volunteer.role})


# -------------------- SERIALIZATION --------------------

def _join_request_dict(join_request):
    return {
        'id': join_request.id,
        'name': join_request.name,
        'email': join_request.email,
        'phone': join_request.phone,
        'academicSpecialization': join_request.academic_specialization,
        'address': join_request.address,
        'status': join_request.status.value,
        'volunteerHours': join_request.volunteer_hours or 0,
        'createdAt': format_utc_iso(join_request.created_at),
    }


def _student_dict(student):
    return {
        'id': student.id,
        'name': student.name,
        'email': student.email,
        'phone': student.phone,
        'grade': student.grade,
        'subjects': [quota.to_dict() for quota in student.subjects],
    }


def _member_details(member, volunteer):
    """Membership record merged with the volunteer account's roster and lecture log."""
    details = _join_request_dict(member)
    if volunteer is None:
        details.update(numberOfStudents=0, students=[], lectures=[], lectureCount=0)
        return details

    names = {normalize_email(s.email): s.name for s in volunteer.students}
    details.update(
        userId=volunteer.id,
        numberOfStudents=len(volunteer.students),
        students=[_student_dict(s) for s in volunteer.students],
        lectures=[
            {
                'id': lecture.id,
                'name': lecture.name,
                'subject': lecture.subject,
                'studentEmail': lecture.student_email,
                'studentName': names.get(normalize_email(lecture.student_email), UNKNOWN_STUDENT_NAME),
                'link': lecture.link,
                'lectureDate': format_utc_iso(lecture.effective_date),
                'duration': lecture.duration,
            }
            for lecture in volunteer.lectures
        ],
        lectureCount=volunteer.lecture_count or 0,
    )
    return details


# -------------------- MEMBERSHIP DIRECTORY --------------------

def _get_join_request(raw_id):
    join_request = db.session.get(JoinRequest, parse_record_id(raw_id, 'Invalid request ID'))
    if not join_request:
        raise NotFoundError('Request not found')
    return join_request


def _pending_join_request(raw_id):
    join_request = _get_join_request(raw_id)
    if join_request.status != JoinRequestStatus.PENDING:
        raise ValidationError('Request has already been processed')
    return join_request


def _account_for(member):
    return Volunteer.query.filter_by(email=normalize_email(member.email)).first()


def _approved_member(raw_id):
    """Return (membership, account) for an approved member or raise."""
    member = db.session.get(JoinRequest, parse_record_id(raw_id, 'Invalid member ID'))
    if not member:
        raise NotFoundError('Member not found')
    if not member.is_approved:
        raise ValidationError('Member must be approved first')

    volunteer = _account_for(member)
    if not volunteer:
        raise NotFoundError('User account not found')
    return member, volunteer


def _ensure_can_manage(volunteer):
    """Admins manage every roster; volunteers only their own."""
    if g.current_user_role == 'admin' or g.current_user_id == volunteer.id:
        return
    current_app.logger.warning(
        f"User {g.current_user_id} tried to manage the roster of {volunteer.email}"
    )
    raise PermissionDeniedError('You can only manage your own students')


@api_bp.route('/join-requests', methods=['POST'])
@limiter.limit("20 per hour")
def submit_join_request():
    data = request.get_json(silent=True) or {}
    required = ('name', 'email', 'phone', 'academicSpecialization', 'address')
    if any(not data.get(field) for field in required):
        raise ValidationError('Name, email, phone, academic specialization and address are required')

    email = normalize_email(data['email'])
    if not is_valid_email(email):
        raise ValidationError('Invalid email address')
    if JoinRequest.query.filter_by(email=email).first():
        raise ValidationError('Email is already in use')

    join_request = JoinRequest(
        name=str(data['name']).strip(),
        email=email,
        phone=str(data['phone']).strip(),
        academic_specialization=str(data['academicSpecialization']).strip(),
        address=str(data['address']).strip(),
    )
    db.session.add(join_request)
    commit_session('join request')

    current_app.logger.info(f"Join request {join_request.id} submitted for {email}")
    return jsonify({
        'success': True,
        'message': 'Join request submitted successfully',
        'id': join_request.id,
    }), 201


@api_bp.route('/join-requests', methods=['GET'])
@admin_required
def list_join_requests():
    join_requests = JoinRequest.query.order_by(JoinRequest.created_at.desc(), JoinRequest.id.desc()).all()
    return jsonify({
        'success': True,
        'requests': [_join_request_dict(r) for r in join_requests],
    })


@api_bp.route('/join-requests/<request_id>/approve', methods=['POST'])
@admin_required
def approve_join_request(request_id):
    """
    Approve a pending join request and open the volunteer account.

    A new account gets a random temporary password, returned once in the
    response; an existing account with the same email is reused as is.
    """
    join_request = _pending_join_request(request_id)
    join_request.status = JoinRequestStatus.APPROVED
    join_request.volunteer_hours = 0

    temporary_password = None
    volunteer = _account_for(join_request)
    if volunteer is None:
        temporary_password = secrets.token_hex(8)
        volunteer = Volunteer(
            email=normalize_email(join_request.email),
            name=join_request.name,
            role='user',
            password_hash=generate_password_hash(temporary_password),
        )
        db.session.add(volunteer)
        current_app.logger.info(f"Created volunteer account for {volunteer.email}")
    else:
        current_app.logger.info(f"Volunteer account already exists for {volunteer.email}")

    commit_session('join request approval')

    response = {
        'success': True,
        'message': 'Join request approved',
        'email': volunteer.email,
        'userId': volunteer.id,
    }
    if temporary_password:
        response['temporaryPassword'] = temporary_password
    return jsonify(response)


@api_bp.route('/join-requests/<request_id>/reject', methods=['POST'])
@admin_required
def reject_join_request(request_id):
    join_request = _pending_join_request(request_id)
    join_request.status = JoinRequestStatus.REJECTED
    commit_session('join request rejection')

    current_app.logger.info(f"Join request {join_request.id} rejected")
    return jsonify({'success': True, 'message': 'Join request rejected'})


@api_bp.route('/approved-members', methods=['GET'])
@admin_required
def list_approved_members():
    members = (
        JoinRequest.query
        .filter_by(status=JoinRequestStatus.APPROVED)
        .order_by(JoinRequest.id)
        .all()
    )
    emails = [normalize_email(m.email) for m in members]
    accounts = {
        normalize_email(v.email): v
        for v in Volunteer.query.filter(Volunteer.email.in_(emails)).all()
    }

    return jsonify({
        'success': True,
        'members': [
            _member_details(member, accounts.get(normalize_email(member.email)))
            for member in members
        ],
    })


@api_bp.route('/members/<member_id>', methods=['GET'])
@token_required
def get_member(member_id):
    member = db.session.get(JoinRequest, parse_record_id(member_id, 'Invalid member ID'))
    if not member:
        raise NotFoundError('Member not found')

    volunteer = _account_for(member)
    if g.current_user_role != 'admin' and (volunteer is None or volunteer.id != g.current_user_id):
        raise PermissionDeniedError('You can only view your own membership')

    return jsonify({'success': True, 'member': _member_details(member, volunteer)})


@api_bp.route('/members/<member_id>', methods=['DELETE'])
@admin_required
def delete_member(member_id):
    """Delete an approved member together with the volunteer account and everything it owns."""
    member, volunteer = _approved_member(member_id)
    email = volunteer.email

    Notification.query.filter_by(volunteer_id=volunteer.id).delete(synchronize_session=False)
    LectureRequest.query.filter_by(volunteer_id=volunteer.id).delete(synchronize_session=False)
    db.session.delete(volunteer)
    db.session.delete(member)
    commit_session('member deletion')

    current_app.logger.info(f"Member {member_id} ({email}) deleted by admin {g.current_user_id}")
    return jsonify({'success': True, 'message': 'Member deleted successfully'})


# -------------------- ROSTER API --------------------

def _validate_subjects(subjects):
    """Return cleaned subject quota dicts or raise ValidationError."""
    if subjects is None:
        return []
    if not isinstance(subjects, list):
        raise ValidationError('Subjects must be a list')

    cleaned = []
    for subject in subjects:
        if not isinstance(subject, dict):
            raise ValidationError('Each subject must be an object with name and minLectures')
        name = subject.get('name')
        if not is_length_between(name, 1, 100) or not name.strip():
            raise ValidationError('Each subject name must be between 1 and 100 characters')
        min_lectures = subject.get('minLectures')
        if isinstance(min_lectures, bool) or not isinstance(min_lectures, int) or min_lectures < 0:
            raise ValidationError('Minimum lectures must be zero or more')
        cleaned.append({'name': name.strip(), 'min_lectures': min_lectures})
    return cleaned


def _clean_student(data):
    """Validate one student payload and return Student column values plus quotas."""
    if not isinstance(data, dict):
        raise ValidationError('Each student must be an object')
    name = data.get('name')
    email = data.get('email')
    phone = data.get('phone')
    grade = data.get('grade')

    if not name or not email or not phone:
        raise ValidationError('Student name, email and phone are required')

    normalized_email = normalize_email(email)
    if not is_valid_email(normalized_email):
        raise ValidationError('Invalid student email')
    if grade and not is_length_between(grade, 1, 50):
        raise ValidationError('Grade must be between 1 and 50 characters')

    return {
        'name': str(name).strip(),
        'email': normalized_email,
        'phone': str(phone).strip(),
        'grade': grade.strip() if grade else None,
        'subjects': _validate_subjects(data.get('subjects')),
    }


def _build_student(cleaned):
    return Student(
        name=cleaned['name'],
        email=cleaned['email'],
        phone=cleaned['phone'],
        grade=cleaned['grade'],
        subjects=[SubjectQuota(**subject) for subject in cleaned['subjects']],
    )


@api_bp.route('/members/<member_id>/students', methods=['POST'])
@token_required
def add_student(member_id):
    """Add a student (with optional weekly subject quotas) to an approved member's roster."""
    cleaned = _clean_student(request.get_json(silent=True) or {})
    member, volunteer = _approved_member(member_id)
    _ensure_can_manage(volunteer)

    if len(volunteer.students) >= MAX_STUDENTS:
        raise ValidationError(f'Cannot add more students, the maximum is {MAX_STUDENTS}')
    if any(normalize_email(s.email) == cleaned['email'] for s in volunteer.students):
        raise ValidationError('Student email is already in use')

    student = _build_student(cleaned)
    volunteer.students.append(student)
    member.volunteer_hours = (member.volunteer_hours or 0) + 1

    commit_session('new student')
    current_app.logger.info(f"Student {cleaned['email']} added to {volunteer.email}")

    return jsonify({
        'success': True,
        'message': 'Student added successfully',
        'student': _student_dict(student),
        'numberOfStudents': len(volunteer.students),
    }), 201


@api_bp.route('/members/<member_id>/update-details', methods=['PUT'])
@admin_required
def update_member_details(member_id):
    """
    Replace an approved member's roster and set their volunteer hours.

    The ``students`` list replaces the roster wholesale, subject quotas
    included; the lecture log is left as it is.
    """
    data = request.get_json(silent=True) or {}
    volunteer_hours = data.get('volunteerHours')
    students = data.get('students')

    if volunteer_hours is None or not isinstance(students, list):
        raise ValidationError('Volunteer hours and students are required')
    if isinstance(volunteer_hours, bool) or not isinstance(volunteer_hours, (int, float)) or volunteer_hours < 0:
        raise ValidationError('Volunteer hours must be zero or more')
    if len(students) > MAX_STUDENTS:
        raise ValidationError(f'Cannot add more students, the maximum is {MAX_STUDENTS}')

    cleaned = [_clean_student(student) for student in students]
    emails = [student['email'] for student in cleaned]
    if len(set(emails)) != len(emails):
        raise ValidationError('Student email is already in use')

    member, volunteer = _approved_member(member_id)

    # Old rows must be gone before new ones reuse (volunteer_id, email)
    volunteer.students.clear()
    db.session.flush()
    volunteer.students.extend(_build_student(student) for student in cleaned)
    member.volunteer_hours = volunteer_hours
    commit_session('member details')

    current_app.logger.info(
        f"Updated details for member {member.id}: {len(cleaned)} students, {volunteer_hours} hours"
    )
    return jsonify({
        'success': True,
        'message': 'Details updated successfully',
        'volunteerHours': member.volunteer_hours,
        'numberOfStudents': len(volunteer.students),
        'students': [_student_dict(s) for s in volunteer.students],
    })
