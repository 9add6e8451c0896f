"""
APScheduler configuration for the backup cycle daemon.

Manages:
- The daily backup cycle job (based on a cron expression)
- Manual cycle triggers
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.jobstores.sqlalchemy import SQLAlchemyJobStore
from apscheduler.executors.pool import ThreadPoolExecutor

from xtracycle.config import CycleConfig
from xtracycle.cycle.executor import execute_backup_cycle

logger = logging.getLogger(__name__)

CYCLE_JOB_ID = 'backup_cycle'

# Global scheduler instance and Flask app reference
scheduler = None
flask_app = None


def init_scheduler(app):
    """
    Initialize and configure APScheduler.

    The cycle configuration is validated here, so a daemon with invalid
    settings fails at startup instead of at the first scheduled run.

    Args:
        app: Flask app instance

    Raises:
        ConfigurationError: If the backup cycle settings are invalid
    """
    global scheduler, flask_app

    if scheduler is not None:
        return scheduler

    CycleConfig.from_app_config(app.config)

    # Store Flask app reference for use in background threads
    flask_app = app

    # Configure job stores and executors
    jobstores = {
        'default': SQLAlchemyJobStore(url=app.config['SQLALCHEMY_DATABASE_URI'])
    }

    executors = {
        'default': ThreadPoolExecutor(max_workers=1)
    }

    job_defaults = {
        'coalesce': True,  # Combine multiple pending runs into one
        'max_instances': 1,  # Never run two cycles at once
        'misfire_grace_time': 3600
    }

    scheduler = BackgroundScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone=app.config['SCHEDULER_TIMEZONE']
    )

    scheduler.add_job(
        func=_execute_cycle_wrapper,
        trigger=CronTrigger.from_crontab(
            app.config['BACKUP_SCHEDULE_CRON'],
            timezone=app.config['SCHEDULER_TIMEZONE']
        ),
        id=CYCLE_JOB_ID,
        name='Weekly Backup Cycle',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the APScheduler.

    Should be called after Flask app is initialized.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if not scheduler.running:
        scheduler.start()
        logger.info(f"APScheduler started (state={scheduler.state})")

        for job in scheduler.get_jobs():
            next_run = job.next_run_time.isoformat() if job.next_run_time else 'N/A'
            logger.info(f"  - {job.id}: {job.name} (next run: {next_run})")
    else:
        logger.info(f"Scheduler already running (state={scheduler.state})")


def stop_scheduler():
    """Stop the APScheduler."""
    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("APScheduler stopped")


def _execute_cycle_wrapper():
    """
    Run one backup cycle in the stored Flask app's context.

    Failures are recorded on the run record; anything escaping the executor
    is logged so the scheduler thread keeps running.
    """
    with flask_app.app_context():
        try:
            cycle_config = CycleConfig.from_app_config(flask_app.config)
            run = execute_backup_cycle(cycle_config, flask_app.config)
            logger.info(
                f"Backup cycle for {run.backup_date} finished with status {run.status} "
                f"(exit code {run.exit_code})"
            )
        except Exception:
            logger.exception("Scheduled backup cycle failed")


def trigger_cycle_now() -> str:
    """
    Manually trigger a backup cycle immediately.

    Returns:
        ID of the one-time scheduler job

    Raises:
        RuntimeError: If the scheduler is not initialized
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized")

    # 1 second delay to avoid racing the scheduler's wakeup
    now = datetime.now(timezone.utc)
    job_id = f"manual_{int(now.timestamp())}_{uuid.uuid4().hex[:8]}"
    scheduler.add_job(
        func=_execute_cycle_wrapper,
        trigger=DateTrigger(run_date=now + timedelta(seconds=1)),
        id=job_id,
        name='Manual Backup Cycle',
        replace_existing=False
    )

    logger.info("Manually triggered backup cycle")
    return job_id


def get_scheduled_jobs() -> list:
    """
    Get list of all scheduled jobs.

    Returns:
        List of dicts with job information
    """
    if scheduler is None:
        return []

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        })

    return jobs


def is_scheduler_running() -> bool:
    return scheduler is not None and scheduler.running
