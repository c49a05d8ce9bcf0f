import json
from unittest.mock import Mock

import paho.mqtt.client as mqtt
import pytest

from bellringer.errors import CallDeliveryError

from bellringer.models.model import CallEvent, CallType
from bellringer.mqtt.mqtt_manager import bell_topic, publish_v2
from bellringer.sinks.bell_sinks import CompositeBellSink, LoggingBellSink, MqttBellSink, call_to_payload
from bellringer.scheduler.bell_trigger import BellTriggerLoop
from tests.factories import at


@pytest.fixture
def lesson_call():
    return CallEvent(
        call_time=at(8, 0), call_type=CallType.LESSON_START, schedule_id=1, lesson_id=101, label="Maths"
    )


@pytest.fixture
def mqtt_client():
    client = Mock()
    client.publish.return_value = Mock(rc=mqtt.MQTT_ERR_SUCCESS)
    return client


class TestMqttBellSink:

    def test_publishes_to_call_type_topic(self, mqtt_client, lesson_call):
        MqttBellSink(mqtt_client)(lesson_call)

        kwargs = mqtt_client.publish.call_args.kwargs
        assert kwargs["topic"] == "bell/lesson_start"
        assert kwargs["qos"] == 2
        assert json.loads(kwargs["payload"])["lessonId"] == 101

    def test_failed_publish_raises(self, mqtt_client, lesson_call):
        mqtt_client.publish.return_value = Mock(rc=mqtt.MQTT_ERR_NO_CONN)

        with pytest.raises(ConnectionError):
            MqttBellSink(mqtt_client)(lesson_call)

    def test_payload_fields(self, lesson_call):
        payload = json.loads(call_to_payload(lesson_call))

        assert payload["callType"] == "LESSON_START"
        assert payload["breakId"] is None
        assert payload["label"] == "Maths"
        assert payload["callTime"].startswith("2024-09-02T08:00:00")

    def test_publish_v2_uses_exactly_once_delivery(self, mqtt_client):
        publish_v2(mqtt_client, bell_topic("BREAK_START"), "{}", log=False, retain=True)

        mqtt_client.publish.assert_called_once_with(topic="bell/break_start", payload="{}", qos=2, retain=True)


class TestLoggingBellSink:

    def test_logs_ringing_bell(self, lesson_call, caplog):
        with caplog.at_level("INFO", logger="bell_trigger"):
            LoggingBellSink()(lesson_call)

        assert "Ringing bell for LESSON_START at 08:00 (Maths)" in caplog.text


class TestCompositeBellSink:

    def test_every_sink_receives_the_call(self, lesson_call):
        first, second = Mock(), Mock()

        CompositeBellSink([first, second])(lesson_call)

        first.assert_called_once_with(lesson_call)
        second.assert_called_once_with(lesson_call)

    def test_failing_sink_does_not_stop_the_rest(self, lesson_call):
        broken = Mock(side_effect=OSError("speaker unplugged"))
        working = Mock()

        CompositeBellSink([broken, working])(lesson_call)

        working.assert_called_once_with(lesson_call)

    def test_all_sinks_failing_raises(self, lesson_call):
        sinks = [Mock(side_effect=OSError("speaker unplugged")), Mock(side_effect=ConnectionError("broker down"))]

        with pytest.raises(CallDeliveryError):
            CompositeBellSink(sinks)(lesson_call)

    def test_total_failure_is_retried_by_the_loop(self, timeline_service):
        flaky = Mock(side_effect=[OSError("speaker unplugged"), None])
        loop = BellTriggerLoop(timeline_service, on_call_fired=CompositeBellSink([flaky]))

        assert loop.tick(at(7, 59, 40)) == []
        fired = loop.tick(at(8, 0, 20))

        assert [call.call_time for call in fired] == [at(8, 0)]
        assert flaky.call_count == 2

    def test_partial_failure_counts_as_delivered(self, timeline_service):
        broken = Mock(side_effect=OSError("speaker unplugged"))
        working = Mock()
        loop = BellTriggerLoop(timeline_service, on_call_fired=CompositeBellSink([broken, working]))

        assert len(loop.tick(at(8, 0))) == 1
        assert loop.tick(at(8, 0, 20)) == []
        assert working.call_count == 1
