import os
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

from bellringer.constants import PRELIMINARY_CALL_LEAD_MINUTES, TICK_INTERVAL_SECONDS, TOLERANCE_SECONDS
from bellringer.utils.logging_config import get_main_logger

logger = get_main_logger()


def load_config() -> bool:
    """Load the .env file named by ENV_FILE; without it the process environment is used as is."""
    env_file = os.getenv("ENV_FILE")
    if env_file is None:
        logger.info("ENV_FILE not set, using process environment")
        return False
    if not os.path.exists(env_file):
        raise ValueError(f"Env file not found: {env_file}")
    load_dotenv(dotenv_path=env_file)
    return True


class MqttSettings(BaseModel):
    url: str
    port: int
    username: str
    password: str


class BellSettings(BaseModel):
    timezone: str = Field(default="Europe/Vilnius", alias="BELL_TZ")
    tick_seconds: int = Field(default=TICK_INTERVAL_SECONDS, alias="BELL_TICK_SECONDS", ge=1)
    tolerance_seconds: int = Field(default=TOLERANCE_SECONDS, alias="BELL_TOLERANCE_SECONDS", ge=0)
    preliminary_lead_minutes: int = Field(
        default=PRELIMINARY_CALL_LEAD_MINUTES, alias="BELL_PRELIMINARY_LEAD_MINUTES", ge=0
    )
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    timetable_json: Optional[str] = Field(default=None, alias="TIMETABLE_JSON")
    mqtt_url: Optional[str] = Field(default=None, alias="MQTT_URL")
    mqtt_port: Optional[int] = Field(default=None, alias="MQTT_PORT")
    mqtt_username: Optional[str] = Field(default=None, alias="MQTT_USERNAME")
    mqtt_password: Optional[str] = Field(default=None, alias="MQTT_PASSWORD")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(default=None, alias="LOG_FILE")

    @model_validator(mode="after")
    def catalog_source_present(self) -> "BellSettings":
        if not self.database_url and not self.timetable_json:
            raise ValueError("Either DATABASE_URL or TIMETABLE_JSON must be set")
        return self

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def mqtt(self) -> Optional[MqttSettings]:
        """MQTT sink settings, or None when MQTT_URL is not configured."""
        if not self.mqtt_url:
            return None
        if self.mqtt_port is None:
            raise ValueError("MQTT_PORT not set")
        if self.mqtt_username is None:
            raise ValueError("MQTT_USERNAME not set")
        if self.mqtt_password is None:
            raise ValueError("MQTT_PASSWORD not set")
        return MqttSettings(
            url=self.mqtt_url,
            port=self.mqtt_port,
            username=self.mqtt_username,
            password=self.mqtt_password,
        )

    class Config:
        populate_by_name = True


def load_settings(environ=None) -> BellSettings:
    environ = os.environ if environ is None else environ
    aliases = {field.alias for field in BellSettings.model_fields.values()}
    raw = {name: value for name, value in environ.items() if name in aliases and value != ""}
    return BellSettings.model_validate(raw)
