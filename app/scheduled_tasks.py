"""
Scheduled background tasks for the volunteer hub.

Contains periodic tasks that run in the background to maintain system state.
"""

import logging


def weekly_low_lecture_check_job():
    """
    Scheduled job that runs the low-lecture check in scheduled mode.
    Creates notifications and updates streaks; errors are logged and rolled back
    so the next weekly run still fires.
    """
    # Import here to avoid circular imports
    from app.extensions import db
    from app.lecture_compliance import check_low_lecture_members

    logger = logging.getLogger('scheduled_tasks')
    logger.info("Starting weekly low lecture check")

    try:
        report = check_low_lecture_members(scheduled=True)
        db.session.commit()
        logger.info(
            f"Weekly low lecture check completed. Processed {report.total_users_processed} members, "
            f"flagged {report.members_with_low_lectures}"
        )
        return report
    except Exception as e:
        logger.error(f"Weekly low lecture check failed: {e}", exc_info=True)
        db.session.rollback()
        return None


def init_scheduled_tasks(app):
    """
    Initialize and start scheduled tasks.

    Args:
        app: Flask application instance
    """
    from app.extensions import scheduler

    logger = logging.getLogger('scheduled_tasks')

    # Wrapper function that runs the job with Flask app context
    def run_with_context():
        with app.app_context():
            weekly_low_lecture_check_job()

    if not scheduler.running:
        scheduler.add_job(
            func=run_with_context,
            trigger='cron',
            day_of_week=app.config['COMPLIANCE_JOB_DAY'],
            hour=app.config['COMPLIANCE_JOB_HOUR'],
            minute=app.config['COMPLIANCE_JOB_MINUTE'],
            timezone=app.config['COMPLIANCE_TIMEZONE'],
            id='weekly_low_lecture_check',
            name='Weekly low lecture check',
            replace_existing=True,
            max_instances=1  # Prevent overlapping executions
        )

        scheduler.start()
        logger.info(
            f"Scheduled tasks initialized. Low lecture check runs every "
            f"{app.config['COMPLIANCE_JOB_DAY']} at {app.config['COMPLIANCE_JOB_HOUR']:02d}:"
            f"{app.config['COMPLIANCE_JOB_MINUTE']:02d} ({app.config['COMPLIANCE_TIMEZONE']})"
        )
    else:
        logger.info("Scheduler already running")
