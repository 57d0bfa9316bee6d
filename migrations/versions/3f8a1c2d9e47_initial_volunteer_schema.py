"""initial volunteer schema

Revision ID: 3f8a1c2d9e47
Revises:
Create Date: 2026-10-12 09:15:42.118204

Creates the volunteer directory, membership, roster, lecture log,
notification and weekly low-lecture report tables.

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f8a1c2d9e47'
down_revision = None
branch_labels = None
depends_on = None


join_request_status = sa.Enum('Pending', 'Approved', 'Rejected', name='join_request_status_enum')
lecture_request_status = sa.Enum('pending', 'accepted', 'rejected', name='lecture_request_status_enum')
notification_type = sa.Enum('lecture_added', 'low_lecture_count_per_subject', 'other', name='notification_type_enum')


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('lecture_count', sa.Integer(), nullable=False),
        sa.Column('low_lecture_week_count', sa.Integer(), nullable=False),
        sa.Column('last_low_lecture_week', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'join_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('academic_specialization', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('status', join_request_status, nullable=False),
        sa.Column('volunteer_hours', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('volunteer_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('grade', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['volunteer_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('volunteer_id', 'email', name='uq_students_volunteer_email'),
    )
    op.create_index('ix_students_volunteer_id', 'students', ['volunteer_id'])

    op.create_table(
        'student_subjects',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('student_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('min_lectures', sa.Integer(), nullable=False),
        sa.CheckConstraint('min_lectures >= 0', name='ck_student_subjects_min_lectures'),
        sa.ForeignKeyConstraint(['student_id'], ['students.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'lectures',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('volunteer_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('link', sa.String(length=2048), nullable=False),
        sa.Column('subject', sa.String(length=100), nullable=False),
        sa.Column('student_email', sa.String(length=255), nullable=False),
        sa.Column('lecture_date', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['volunteer_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_lectures_volunteer_id', 'lectures', ['volunteer_id'])

    op.create_table(
        'lecture_requests',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('volunteer_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('link', sa.String(length=2048), nullable=False),
        sa.Column('subject', sa.String(length=100), nullable=False),
        sa.Column('student_email', sa.String(length=255), nullable=False),
        sa.Column('lecture_date', sa.DateTime(), nullable=False),
        sa.Column('duration', sa.Float(), nullable=False),
        sa.Column('status', lecture_request_status, nullable=False),
        sa.Column('admin_action_at', sa.DateTime(), nullable=True),
        sa.Column('admin_note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['volunteer_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_lecture_requests_status', 'lecture_requests', ['status'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('volunteer_id', sa.Integer(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('student_email', sa.String(length=255), nullable=True),
        sa.Column('subject', sa.String(length=100), nullable=True),
        sa.Column('min_lectures', sa.Integer(), nullable=True),
        sa.Column('current_lectures', sa.Integer(), nullable=True),
        sa.Column('lecture_name', sa.String(length=100), nullable=True),
        sa.Column('lecture_link', sa.String(length=2048), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['volunteer_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_volunteer_type', 'notifications', ['volunteer_id', 'type'])

    op.create_table(
        'low_lecture_reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('week_start', sa.DateTime(), nullable=False),
        sa.Column('week_end', sa.DateTime(), nullable=False),
        sa.Column('total_users_processed', sa.Integer(), nullable=False),
        sa.Column('members_with_low_lectures', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('week_start'),
    )

    op.create_table(
        'low_lecture_report_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_id', sa.Integer(), nullable=False),
        sa.Column('volunteer_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('low_lecture_week_count', sa.Integer(), nullable=False),
        sa.Column('under_target_students', sa.JSON(), nullable=False),
        sa.Column('lectures', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['low_lecture_reports.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('report_id', 'volunteer_id', name='uq_low_lecture_report_members_report_volunteer'),
    )


def downgrade():
    op.drop_table('low_lecture_report_members')
    op.drop_table('low_lecture_reports')
    op.drop_index('ix_notifications_volunteer_type', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_lecture_requests_status', table_name='lecture_requests')
    op.drop_table('lecture_requests')
    op.drop_index('ix_lectures_volunteer_id', table_name='lectures')
    op.drop_table('lectures')
    op.drop_table('student_subjects')
    op.drop_index('ix_students_volunteer_id', table_name='students')
    op.drop_table('students')
    op.drop_table('join_requests')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_table('users')

    bind = op.get_bind()
    notification_type.drop(bind, checkfirst=True)
    lecture_request_status.drop(bind, checkfirst=True)
    join_request_status.drop(bind, checkfirst=True)
