"""
Database models for the volunteer hub.

All SQLAlchemy models are defined here with proper relationships and properties.
Times are stored as naive UTC in the database.
"""

from datetime import datetime, timezone
import enum

from app.extensions import db


def _utc_now():
    """Naive UTC timestamp used for column defaults."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# -------------------- ENUMS --------------------

class JoinRequestStatus(enum.Enum):
    """Enum for membership approval states."""
    PENDING = 'Pending'
    APPROVED = 'Approved'
    REJECTED = 'Rejected'


class LectureRequestStatus(enum.Enum):
    """Enum for lecture request review states."""
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class NotificationType(enum.Enum):
    LECTURE_ADDED = 'lecture_added'
    LOW_LECTURE_COUNT_PER_SUBJECT = 'low_lecture_count_per_subject'
    OTHER = 'other'


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


# -------------------- VOLUNTEER DIRECTORY --------------------

class Volunteer(db.Model):
    """
    A user account. Volunteers (role ``user``) teach students and log lectures.

    ``low_lecture_week_count`` and ``last_low_lecture_week`` are owned by the
    weekly compliance check; request handlers never write them.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='user')
    name = db.Column(db.String(255), nullable=True)

    lecture_count = db.Column(db.Integer, nullable=False, default=0)
    low_lecture_week_count = db.Column(db.Integer, nullable=False, default=0)
    last_low_lecture_week = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=_utc_now)

    students = db.relationship(
        'Student',
        backref='volunteer',
        cascade='all, delete-orphan',
        order_by='Student.id',
    )
    lectures = db.relationship(
        'Lecture',
        backref='volunteer',
        cascade='all, delete-orphan',
        order_by='Lecture.id',
    )

    __table_args__ = (
        db.Index('ix_users_role', 'role'),
    )

    @property
    def is_admin(self):
        return self.role == 'admin'

    def __repr__(self):
        return f'<Volunteer {self.email} ({self.role})>'


class JoinRequest(db.Model):
    """
    Membership record for a volunteer applicant.

    Approval status gates whether the volunteer is scanned by the weekly
    compliance check; ``volunteer_hours`` is the cumulative hour total.
    """
    __tablename__ = 'join_requests'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    academic_specialization = db.Column(db.String(255), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.Enum(JoinRequestStatus, values_callable=_enum_values, name='join_request_status_enum'),
        default=JoinRequestStatus.PENDING,
        nullable=False,
    )
    volunteer_hours = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utc_now)

    @property
    def is_approved(self):
        return self.status == JoinRequestStatus.APPROVED

    def __repr__(self):
        return f'<JoinRequest {self.email} - {self.status.value}>'


class Student(db.Model):
    """A tutee on a volunteer's roster. Email is stored lowercase."""
    __tablename__ = 'students'

    id = db.Column(db.Integer, primary_key=True)
    volunteer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=True)
    grade = db.Column(db.String(50), nullable=True)

    subjects = db.relationship(
        'SubjectQuota',
        backref='student',
        cascade='all, delete-orphan',
        order_by='SubjectQuota.id',
    )

    __table_args__ = (
        db.UniqueConstraint('volunteer_id', 'email', name='uq_students_volunteer_email'),
        db.Index('ix_students_volunteer_id', 'volunteer_id'),
    )

    def __repr__(self):
        return f'<Student {self.email} of volunteer {self.volunteer_id}>'


class SubjectQuota(db.Model):
    """Minimum number of lectures a student needs per week in one subject."""
    __tablename__ = 'student_subjects'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('students.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    min_lectures = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.CheckConstraint('min_lectures >= 0', name='ck_student_subjects_min_lectures'),
    )

    def to_dict(self):
        return {'name': self.name, 'minLectures': self.min_lectures}


class Lecture(db.Model):
    """
    A delivered lecture. Append-only: rows are created and deleted but never edited.
    """
    __tablename__ = 'lectures'

    id = db.Column(db.Integer, primary_key=True)
    volunteer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    link = db.Column(db.String(2048), nullable=False)
    subject = db.Column(db.String(100), nullable=False)
    student_email = db.Column(db.String(255), nullable=False)
    lecture_date = db.Column(db.DateTime, nullable=True)
    duration = db.Column(db.Float, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)

    __table_args__ = (
        db.Index('ix_lectures_volunteer_id', 'volunteer_id'),
    )

    @property
    def effective_date(self):
        """Date counted against weekly quotas: the lecture date, else its creation time."""
        return self.lecture_date or self.created_at

    def __repr__(self):
        return f'<Lecture {self.id} {self.subject} -> {self.student_email}>'


class LectureRequest(db.Model):
    """A lecture submitted by a volunteer and awaiting admin review."""
    __tablename__ = 'lecture_requests'

    id = db.Column(db.Integer, primary_key=True)
    volunteer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    link = db.Column(db.String(2048), nullable=False)
    subject = db.Column(db.String(100), nullable=False)
    student_email = db.Column(db.String(255), nullable=False)
    lecture_date = db.Column(db.DateTime, nullable=False)
    duration = db.Column(db.Float, nullable=False)
    status = db.Column(
        db.Enum(LectureRequestStatus, values_callable=_enum_values, name='lecture_request_status_enum'),
        default=LectureRequestStatus.PENDING,
        nullable=False,
    )
    admin_action_at = db.Column(db.DateTime, nullable=True)
    admin_note = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)

    volunteer = db.relationship('Volunteer', backref=db.backref('lecture_requests', lazy='dynamic', passive_deletes=True))

    __table_args__ = (
        db.Index('ix_lecture_requests_status', 'status'),
    )


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    volunteer_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(
        db.Enum(NotificationType, values_callable=_enum_values, name='notification_type_enum'),
        nullable=False,
    )

    # Lecture details (shape depends on type)
    student_email = db.Column(db.String(255), nullable=True)
    subject = db.Column(db.String(100), nullable=True)
    min_lectures = db.Column(db.Integer, nullable=True)
    current_lectures = db.Column(db.Integer, nullable=True)
    lecture_name = db.Column(db.String(100), nullable=True)
    lecture_link = db.Column(db.String(2048), nullable=True)

    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)
    read = db.Column(db.Boolean, default=False, nullable=False)

    volunteer = db.relationship('Volunteer', backref=db.backref('notifications', lazy='dynamic', passive_deletes=True))

    __table_args__ = (
        db.Index('ix_notifications_volunteer_type', 'volunteer_id', 'type'),
    )

    def __repr__(self):
        return f'<Notification {self.type.value} for {self.volunteer_id}>'


# -------------------- WEEKLY COMPLIANCE REPORTS --------------------

class WeeklyReport(db.Model):
    """
    Point-in-time low-lecture report for one Saturday-to-Friday week.

    Exactly one row exists per ``week_start``; regenerating a week replaces
    its member list in place.
    """
    __tablename__ = 'low_lecture_reports'

    id = db.Column(db.Integer, primary_key=True)
    week_start = db.Column(db.DateTime, nullable=False, unique=True)
    week_end = db.Column(db.DateTime, nullable=False)
    total_users_processed = db.Column(db.Integer, nullable=False, default=0)
    members_with_low_lectures = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)

    members = db.relationship(
        'FlaggedMember',
        backref='report',
        cascade='all, delete-orphan',
        order_by='FlaggedMember.id',
    )

    def __repr__(self):
        return f'<WeeklyReport {self.week_start:%Y-%m-%d} - {self.members_with_low_lectures} flagged>'


class FlaggedMember(db.Model):
    """
    Immutable snapshot of a volunteer with at least one under-target student.

    ``volunteer_id`` is not a foreign key; snapshots survive removal of the
    live account.
    """
    __tablename__ = 'low_lecture_report_members'

    id = db.Column(db.Integer, primary_key=True)
    report_id = db.Column(db.Integer, db.ForeignKey('low_lecture_reports.id', ondelete='CASCADE'), nullable=False)
    volunteer_id = db.Column(db.Integer, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    low_lecture_week_count = db.Column(db.Integer, nullable=False, default=0)
    # [{studentName, studentEmail, academicLevel, underTargetSubjects: [{name, minLectures, deliveredLectures}]}]
    under_target_students = db.Column(db.JSON, nullable=False)
    lectures = db.Column(db.JSON, nullable=False)

    __table_args__ = (
        db.UniqueConstraint('report_id', 'volunteer_id', name='uq_low_lecture_report_members_report_volunteer'),
    )

    def to_dict(self):
        return {
            'id': self.volunteer_id,
            'name': self.name,
            'email': self.email,
            'lowLectureWeekCount': self.low_lecture_week_count,
            'underTargetStudents': self.under_target_students,
            'lectures': self.lectures,
        }
