import paho.mqtt.client as mqtt

from bellringer.utils.logging_config import get_mqtt_logger

logger = get_mqtt_logger()

mqtt_client: mqtt.Client | None = None

# MQTT Topic Constants - bell calls are published under bell/<call_type>
BELL_CALL_BASE = "bell"


def bell_topic(call_type: str) -> str:
    return f"{BELL_CALL_BASE}/{call_type.lower()}"


def init_mqtt(mqtt_url: str, mqtt_username: str, mqtt_password: str, mqtt_port: int) -> mqtt.Client:
    global mqtt_client
    logger.info("Initializing MQTT client")
    mqtt_client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, transport="websockets")
    mqtt_client.on_connect = on_connect
    mqtt_client.on_disconnect = on_disconnect
    mqtt_client.username_pw_set(username=mqtt_username, password=mqtt_password)

    logger.info(f"Connecting to {mqtt_url}:{mqtt_port}")
    mqtt_client.connect(mqtt_url, mqtt_port, keepalive=60)
    mqtt_client.loop_start()
    return mqtt_client


def on_connect(client, userdata, flags, reason_code, properties=None):
    logger.info(f"Connected with result code: {reason_code}")


def on_disconnect(client, userdata, flags, reason_code, properties=None):
    logger.warning(f"Disconnected with result code: {reason_code}")


def publish_v2(client: mqtt.Client, topic: str, msg, log: bool = True, retain: bool = False):
    if log:
        logger.info(f"MQTT_PUBLISH | Topic: {topic} | Message: {msg}")
    return client.publish(topic=topic, payload=msg, qos=2, retain=retain)
