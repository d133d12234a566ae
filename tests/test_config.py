import pytest

from pylitedoc.config import Settings, get_settings


def test_defaults(monkeypatch):
    for key in ("PYLITEDOC_DATA_DIR", "PYLITEDOC_LOCK_TIMEOUT", "PYLITEDOC_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    s = Settings(_env_file=None)
    assert s.data_dir == "./pylitedoc_data"
    assert s.lock_timeout == 10.0
    assert s.json_indent == 2
    assert s.fsync is True
    assert s.id_strategy == "objectid"
    assert s.counter_floor == 0
    assert s.allow_negative is False
    assert s.log_level == "WARNING"
    assert s.log_format == "console"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PYLITEDOC_DATA_DIR", "/var/lib/docs")
    monkeypatch.setenv("PYLITEDOC_LOCK_TIMEOUT", "2.5")
    monkeypatch.setenv("PYLITEDOC_ID_STRATEGY", "uuid")
    monkeypatch.setenv("PYLITEDOC_LOG_LEVEL", "debug")
    s = Settings(_env_file=None)
    assert s.data_dir == "/var/lib/docs"
    assert s.lock_timeout == 2.5
    assert s.id_strategy == "uuid"
    assert s.log_level == "DEBUG"


def test_negative_lock_timeout_waits_forever():
    assert Settings(_env_file=None, lock_timeout=-1).lock_timeout is None


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        Settings(_env_file=None, id_strategy="random")
    with pytest.raises(ValueError):
        Settings(_env_file=None, log_format="xml")


def test_get_settings_is_cached():
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
