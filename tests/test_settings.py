import os

import pytest
from pydantic import ValidationError

from bellringer.config.settings import load_config, load_settings


class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings({"TIMETABLE_JSON": "timetable.json"})

        assert settings.timezone == "Europe/Vilnius"
        assert settings.tick_seconds == 60
        assert settings.tolerance_seconds == 30
        assert settings.preliminary_lead_minutes == 2
        assert settings.mqtt is None

    def test_values_from_environment(self):
        settings = load_settings({
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "BELL_TZ": "Europe/Riga",
            "BELL_TOLERANCE_SECONDS": "15",
            "BELL_PRELIMINARY_LEAD_MINUTES": "0",
            "UNRELATED": "ignored",
        })

        assert settings.tz.key == "Europe/Riga"
        assert settings.tolerance_seconds == 15
        assert settings.preliminary_lead_minutes == 0

    def test_catalog_source_required(self):
        with pytest.raises(ValidationError):
            load_settings({})

    def test_negative_lead_rejected(self):
        with pytest.raises(ValidationError):
            load_settings({"TIMETABLE_JSON": "t.json", "BELL_PRELIMINARY_LEAD_MINUTES": "-1"})

    def test_mqtt_settings(self):
        settings = load_settings({
            "TIMETABLE_JSON": "t.json",
            "MQTT_URL": "broker.local",
            "MQTT_PORT": "8083",
            "MQTT_USERNAME": "bell",
            "MQTT_PASSWORD": "secret",
        })

        assert settings.mqtt.port == 8083

    def test_incomplete_mqtt_settings(self):
        settings = load_settings({"TIMETABLE_JSON": "t.json", "MQTT_URL": "broker.local"})

        with pytest.raises(ValueError):
            settings.mqtt


class TestLoadConfig:

    def test_without_env_file(self, monkeypatch):
        monkeypatch.delenv("ENV_FILE", raising=False)

        assert load_config() is False

    def test_missing_env_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ENV_FILE", str(tmp_path / "missing.env"))

        with pytest.raises(ValueError):
            load_config()

    def test_env_file_is_loaded(self, monkeypatch, tmp_path):
        env_file = tmp_path / "bell.env"
        env_file.write_text("BELL_TOLERANCE_SECONDS=20\n", encoding="utf-8")
        monkeypatch.setenv("ENV_FILE", str(env_file))
        # Registered with monkeypatch so the value loaded from the file is removed afterwards
        monkeypatch.setenv("BELL_TOLERANCE_SECONDS", "0")
        monkeypatch.delenv("BELL_TOLERANCE_SECONDS")

        assert load_config() is True
        assert load_settings({"TIMETABLE_JSON": "t.json", **os.environ}).tolerance_seconds == 20
