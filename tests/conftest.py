"""
Shared fixtures for the bell timetable tests.

Monday 2024-09-02 is used as the reference school day throughout.
"""

import datetime

import pytest

from bellringer.catalog.schedule_catalog import InMemoryScheduleCatalog
from bellringer.models.model import Break, Schedule
from bellringer.projector.timeline_projector import TimelineProjector
from bellringer.projector.timeline_service import TimelineService
from bellringer.resolver.schedule_resolver import ScheduleResolver
from bellringer.sql_orm.connection.sqlalchemy_pg import dispose_global_engine, initialize_global_engine
from tests.factories import make_schedule


@pytest.fixture
def monday_schedule() -> Schedule:
    """Three 45 minute lessons from 08:00 without breaks."""
    return make_schedule()


@pytest.fixture
def schedule_with_break() -> Schedule:
    """08:00-08:45 lesson, 08:45-08:55 break, 08:55-09:40 lesson."""
    return make_schedule(
        lesson_count=2,
        breaks=(Break(id=10, name="Short break", start_time=datetime.time(8, 45), duration=10, schedule_id=1),),
    )


@pytest.fixture
def catalog(monday_schedule) -> InMemoryScheduleCatalog:
    return InMemoryScheduleCatalog(schedules=[monday_schedule])


@pytest.fixture
def projector() -> TimelineProjector:
    return TimelineProjector()


@pytest.fixture
def timeline_service(catalog, projector) -> TimelineService:
    return TimelineService(ScheduleResolver(catalog), projector)


@pytest.fixture
def sql_engine():
    """Fresh in-memory SQLite database with every table created."""
    engine = initialize_global_engine("sqlite+pysqlite:///:memory:", create_tables=True)
    yield engine
    dispose_global_engine()
