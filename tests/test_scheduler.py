from unittest.mock import Mock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from bellringer.constants import BELL_TICK_JOB_ID, DAILY_RESET_JOB_ID
from bellringer.scheduler.scheduler import (
    init_scheduler,
    purge_all_jobs,
    register_bell_tick_job,
    register_daily_reset_job,
)


@pytest.fixture
def scheduler():
    scheduler = init_scheduler(start=False)
    scheduler.start(paused=True)
    yield scheduler
    scheduler.shutdown(wait=False)


class TestBellJobs:

    def test_tick_job_registered_on_interval(self, scheduler):
        job = register_bell_tick_job(scheduler, Mock(), interval_seconds=30)

        assert job.id == BELL_TICK_JOB_ID
        assert isinstance(job.trigger, IntervalTrigger)
        assert job.trigger.interval.total_seconds() == 30

    def test_reregistering_replaces_the_job(self, scheduler):
        register_bell_tick_job(scheduler, Mock())
        register_bell_tick_job(scheduler, Mock())

        assert [job.id for job in scheduler.get_jobs()] == [BELL_TICK_JOB_ID]

    def test_daily_reset_runs_at_midnight(self, scheduler):
        job = register_daily_reset_job(scheduler, Mock())

        assert job.id == DAILY_RESET_JOB_ID
        assert isinstance(job.trigger, CronTrigger)
        assert str(job.trigger.fields[5]) == "0"
        assert str(job.trigger.fields[6]) == "0"

    def test_purge_all_jobs(self, scheduler):
        register_bell_tick_job(scheduler, Mock())
        register_daily_reset_job(scheduler, Mock())

        purge_all_jobs(scheduler)

        assert scheduler.get_jobs() == []
