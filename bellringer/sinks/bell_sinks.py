"""
Receivers of fired bell calls.

The trigger loop hands every due call to one callable; these are the
stock implementations. Audio playback itself lives outside this project.
"""

import json
import logging
from typing import Iterable, List, Optional

import paho.mqtt.client as mqtt

from bellringer.errors import CallDeliveryError
from bellringer.models.model import CallEvent
from bellringer.mqtt.mqtt_manager import bell_topic, publish_v2
from bellringer.scheduler.bell_trigger import CallSink
from bellringer.utils.logging_config import get_bell_logger, get_mqtt_logger
from bellringer.utils.time_utils.time_utils import format_time


def call_to_payload(call: CallEvent) -> str:
    return json.dumps({
        "callTime": call.call_time.isoformat(),
        "callType": call.call_type.value,
        "scheduleId": call.schedule_id,
        "lessonId": call.lesson_id,
        "breakId": call.break_id,
        "label": call.label,
    })


class LoggingBellSink:

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or get_bell_logger()

    def __call__(self, call: CallEvent) -> None:
        self._logger.info(f"Ringing bell for {call.call_type.value} at {format_time(call.call_time.time())} ({call.label})")


class MqttBellSink:

    def __init__(self, client: mqtt.Client, retain: bool = False):
        self._client = client
        self._retain = retain
        self._logger = get_mqtt_logger()

    def __call__(self, call: CallEvent) -> None:
        info = publish_v2(
            client=self._client,
            topic=bell_topic(call.call_type.value),
            msg=call_to_payload(call),
            retain=self._retain,
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise ConnectionError(f"MQTT publish failed with code {info.rc}")


class CompositeBellSink:
    """
    Fans a call out to several sinks; one failing sink does not stop the others.

    Raises CallDeliveryError when every sink failed, so the caller can retry.
    """

    def __init__(self, sinks: Iterable[CallSink], logger: Optional[logging.Logger] = None):
        self._sinks: List[CallSink] = list(sinks)
        self._logger = logger or get_bell_logger()

    def __call__(self, call: CallEvent) -> None:
        failures = []
        for sink in self._sinks:
            try:
                sink(call)
            except Exception as e:
                self._logger.error(f"Bell sink {type(sink).__name__} failed for {call.reference}: {e}")
                failures.append(e)

        if self._sinks and len(failures) == len(self._sinks):
            raise CallDeliveryError(f"All {len(failures)} bell sinks failed for {call.reference}") from failures[-1]
