import datetime
import time
from typing import List

import paho.mqtt.client as mqtt

from bellringer.catalog.schedule_catalog import ScheduleCatalog
from bellringer.config.settings import BellSettings, load_config, load_settings
from bellringer.json.timetable_parser import load_timetable_file
from bellringer.mqtt.mqtt_manager import init_mqtt
from bellringer.projector.timeline_projector import TimelineProjector
from bellringer.projector.timeline_service import TimelineService
from bellringer.resolver.schedule_resolver import ScheduleResolver
from bellringer.scheduler.bell_trigger import BellTriggerLoop, CallSink
from bellringer.scheduler.scheduler import init_scheduler, register_bell_tick_job, register_daily_reset_job
from bellringer.sinks.bell_sinks import CompositeBellSink, LoggingBellSink, MqttBellSink
from bellringer.sql_orm.catalog.sql_schedule_catalog import SqlScheduleCatalog
from bellringer.sql_orm.connection.sqlalchemy_pg import dispose_global_engine, initialize_global_engine
from bellringer.utils.logging_config import ScheduleSystemLogger, get_main_logger

logger = get_main_logger()


def load_catalog(settings: BellSettings) -> ScheduleCatalog:
    if settings.database_url:
        logger.info("Using database schedule catalog")
        initialize_global_engine(settings.database_url)
        return SqlScheduleCatalog()

    logger.info(f"Using timetable file {settings.timetable_json}")
    return load_timetable_file(settings.timetable_json)


def load_mqtt(settings: BellSettings) -> mqtt.Client | None:
    mqtt_settings = settings.mqtt
    if mqtt_settings is None:
        logger.info("MQTT_URL not set, bell calls will only be logged")
        return None

    return init_mqtt(
        mqtt_url=mqtt_settings.url,
        mqtt_port=mqtt_settings.port,
        mqtt_username=mqtt_settings.username,
        mqtt_password=mqtt_settings.password
    )


def build_bell_loop(settings: BellSettings, catalog: ScheduleCatalog, sink: CallSink) -> BellTriggerLoop:
    tz = settings.tz
    projector = TimelineProjector(preliminary_lead_minutes=settings.preliminary_lead_minutes, tz=tz)
    timeline_service = TimelineService(ScheduleResolver(catalog), projector)
    return BellTriggerLoop(
        timeline_service,
        on_call_fired=sink,
        tolerance_seconds=settings.tolerance_seconds,
        clock=lambda: datetime.datetime.now(tz),
    )


def main():
    load_config()
    settings = load_settings()
    ScheduleSystemLogger.setup_logging(log_level=settings.log_level, log_file=settings.log_file)

    catalog = load_catalog(settings)
    mqtt_client = load_mqtt(settings)

    sinks: List[CallSink] = [LoggingBellSink()]
    if mqtt_client is not None:
        sinks.append(MqttBellSink(mqtt_client))
    bell_loop = build_bell_loop(settings, catalog, CompositeBellSink(sinks))

    scheduler = init_scheduler(tz=settings.tz)
    register_bell_tick_job(scheduler, bell_loop, interval_seconds=settings.tick_seconds)
    register_daily_reset_job(scheduler, bell_loop, tz=settings.tz)

    # Ring anything due right now instead of waiting a full interval
    bell_loop.tick()

    logger.info("Bell service running, press Ctrl+C to stop")
    try:
        while True:
            time.sleep(1)
    except (KeyboardInterrupt, SystemExit):
        logger.info("Shutting down bell service")
    finally:
        scheduler.shutdown(wait=False)
        if mqtt_client is not None:
            mqtt_client.loop_stop()
            mqtt_client.disconnect()
        if settings.database_url:
            dispose_global_engine()


if __name__ == "__main__":
    main()
