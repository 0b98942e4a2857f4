from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import Settings
from app.database import engine_options


def test_cors_origins_accept_comma_separated_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")

    settings = Settings()

    assert [str(origin).rstrip("/") for origin in settings.cors_origins] == [
        "http://a.example",
        "http://b.example",
    ]


def test_database_url_prefers_explicit_sqlalchemy_url(monkeypatch):
    monkeypatch.setenv("DB_HOST", "mysql.internal")
    assert "mysql.internal:3306" in Settings().database_url

    monkeypatch.setenv("SQLALCHEMY_URL", "sqlite:///./chat.db")
    assert Settings().database_url == "sqlite:///./chat.db"


def test_log_level_is_normalized_and_validated(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert Settings().log_level == "DEBUG"

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValidationError):
        Settings()


@pytest.mark.parametrize("field", ["CHAT_STREAM_QUEUE_SIZE", "CHAT_HISTORY_LIMIT"])
def test_stream_limits_must_be_positive(monkeypatch, field):
    monkeypatch.setenv(field, "0")

    with pytest.raises(ValidationError):
        Settings()


def test_engine_options_depend_on_backend():
    sqlite = engine_options("sqlite://")
    mysql = engine_options("mysql+pymysql://u:p@db:3306/workhub")

    assert sqlite["connect_args"] == {"check_same_thread": False}
    assert "pool_size" not in sqlite
    assert mysql["pool_pre_ping"] is True
    assert mysql["pool_recycle"] == 3600
