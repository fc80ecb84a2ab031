"""
Configuration defaults
"""
from pathlib import Path

from event_planner.config import Settings


def test_defaults():
    settings = Settings()
    assert settings.SERVICE_NAME == "event-planner-service"
    assert settings.PORT == 4000
    assert settings.REDIS_PORT == 6379
    assert settings.BACKPRESSURE_POLICY == "drop_oldest"
    assert Path(settings.FIXTURE_PATH).name == "fixture.json"


def test_env_override(monkeypatch):
    monkeypatch.setenv("REDIS_HOST", "redis.internal")
    monkeypatch.setenv("SUBSCRIBER_BUFFER_SIZE", "5")

    settings = Settings()

    assert settings.REDIS_HOST == "redis.internal"
    assert settings.SUBSCRIBER_BUFFER_SIZE == 5


def test_env_names_are_case_sensitive(monkeypatch):
    monkeypatch.setenv("redis_host", "ignored.internal")

    settings = Settings()

    assert settings.REDIS_HOST == "localhost"
    assert settings.model_config["env_file"] == ".env"
