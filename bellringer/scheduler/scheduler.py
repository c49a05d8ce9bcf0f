from zoneinfo import ZoneInfo

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.executors.pool import ThreadPoolExecutor as APSThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from bellringer.constants import BELL_TICK_JOB_ID, DAILY_RESET_JOB_ID, SCHOOL_TZ, TICK_INTERVAL_SECONDS
from bellringer.scheduler.bell_trigger import BellTriggerLoop
from bellringer.utils.logging_config import get_bell_logger

logger = get_bell_logger()


def init_scheduler(tz: ZoneInfo = SCHOOL_TZ, start: bool = True) -> BackgroundScheduler:
    # A single worker and max_instances=1 keep ticks from ever overlapping.
    scheduler = BackgroundScheduler(
        timezone=tz,
        job_defaults={
            'max_instances': 1,
            'misfire_grace_time': TICK_INTERVAL_SECONDS,
            'coalesce': True
        },
        executors={
            'default': APSThreadPoolExecutor(1)
        }
    )

    def job_listener(event):
        if event.code == EVENT_JOB_MISSED:
            logger.warning(f"Job {event.job_id} missed its run time {event.scheduled_run_time}")
        elif getattr(event, 'exception', None):
            logger.error(f"Job {event.job_id} crashed: {event.exception}", exc_info=event.exception)
        else:
            logger.debug(f"Job {event.job_id} executed successfully")

    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)

    if start:
        scheduler.start()
        logger.info("Bell scheduler initialized and started")
    return scheduler


def register_bell_tick_job(
    scheduler: BackgroundScheduler,
    bell_loop: BellTriggerLoop,
    interval_seconds: int = TICK_INTERVAL_SECONDS
):
    logger.info(f"Bell tick job registered every {interval_seconds} seconds")
    return scheduler.add_job(
        bell_loop.tick,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=BELL_TICK_JOB_ID,
        name="Bell trigger loop",
        replace_existing=True
    )


def register_daily_reset_job(scheduler: BackgroundScheduler, bell_loop: BellTriggerLoop, tz: ZoneInfo = SCHOOL_TZ):
    logger.info("Daily fired-call reset job registered at 00:00")
    return scheduler.add_job(
        bell_loop.daily_reset,
        trigger=CronTrigger(hour=0, minute=0, timezone=tz),
        id=DAILY_RESET_JOB_ID,
        name="Daily fired-call reset",
        replace_existing=True
    )


def purge_all_jobs(scheduler: BackgroundScheduler):
    logger.info("Clearing all jobs")
    scheduler.remove_all_jobs()
