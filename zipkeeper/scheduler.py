"""
APScheduler configuration for running backups on a cron schedule.

The scheduler runs in the foreground and fires one full backup per cron
tick. Runs never overlap and missed ticks are coalesced into one.
"""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from zipkeeper.backup.executor import run_backup


logger = logging.getLogger(__name__)

JOB_ID = 'zipkeeper_backup'


def _scheduled_backup(dst_dir: str, debug: bool):
    errors = run_backup(dst_dir, debug=debug)
    if errors.has_errors:
        logger.warning(f"Scheduled backup finished with {len(errors)} errors")


def create_scheduler(dst_dir: str, cron_expression: str, debug: bool = False) -> BlockingScheduler:
    """
    Build a scheduler that backs up ``dst_dir`` on a cron schedule.

    Args:
        dst_dir: Backup directory
        cron_expression: Standard 5-field crontab expression, evaluated in UTC
        debug: Enable DEBUG logging for each run

    Returns:
        Configured (not yet started) BlockingScheduler

    Raises:
        ValueError: If the cron expression is invalid
    """
    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Only one backup at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BlockingScheduler(job_defaults=job_defaults, timezone='UTC')

    scheduler.add_job(
        func=_scheduled_backup,
        trigger=CronTrigger.from_crontab(cron_expression, timezone='UTC'),
        args=[dst_dir, debug],
        id=JOB_ID,
        name=f'Backup {dst_dir}',
        replace_existing=True
    )

    return scheduler


def start_scheduler(scheduler: BlockingScheduler):
    """Run scheduled backups until interrupted."""
    for job in scheduler.get_jobs():
        logger.info(f"Scheduled job: {job.id} ({job.name}, trigger: {job.trigger})")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler stopped")
