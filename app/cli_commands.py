"""
Flask CLI commands for maintenance operations.
"""

import click
from werkzeug.security import generate_password_hash

from app.extensions import db
from app.lecture_compliance import check_low_lecture_members
from app.models import Volunteer
from app.utils.helpers import format_utc_iso, normalize_email, is_valid_email


@click.command('check-low-lectures')
@click.option('--lazy', is_flag=True, help='Only compute and store the report; skip notifications and streaks.')
def check_low_lectures_command(lazy):
    """
    Run the weekly low-lecture check for the current compliance week.

    Uses scheduled mode (notifications + streak updates) unless --lazy is given.
    """
    try:
        report = check_low_lecture_members(scheduled=not lazy)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        click.echo(f"✗ Low lecture check failed: {e}", err=True)
        raise click.Abort()

    click.echo(f"Week: {format_utc_iso(report.week_start)} → {format_utc_iso(report.week_end)}")
    click.echo(f"Members processed:        {report.total_users_processed}")
    click.echo(f"Members with low lectures: {report.members_with_low_lectures}")
    for member in report.members:
        students = ", ".join(s['studentEmail'] for s in member.under_target_students)
        click.echo(f"  - {member.email} (streak {member.low_lecture_week_count}): {students}")


@click.command('create-admin')
@click.argument('email')
@click.password_option()
def create_admin_command(email, password):
    """Create an admin account, or promote an existing user to admin."""
    normalized = normalize_email(email)
    if not is_valid_email(normalized):
        click.echo(f"✗ Invalid email: {email}", err=True)
        raise click.Abort()

    user = Volunteer.query.filter_by(email=normalized).first()
    if user:
        user.role = 'admin'
        user.password_hash = generate_password_hash(password)
        click.echo(f"✓ Promoted existing user {normalized} to admin")
    else:
        db.session.add(Volunteer(
            email=normalized,
            name='Admin',
            role='admin',
            password_hash=generate_password_hash(password),
        ))
        click.echo(f"✓ Created admin {normalized}")
    db.session.commit()


def init_app(app):
    """Register CLI commands with Flask app."""
    app.cli.add_command(check_low_lectures_command)
    app.cli.add_command(create_admin_command)
