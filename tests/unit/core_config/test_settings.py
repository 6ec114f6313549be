from core_config.constants import (
    SYNC_AGGREGATE_DEBOUNCE_MS, SYNC_DEBOUNCE_MS, SYNC_PROCESS_BUFFER_MS,
    SYNC_RECENT_BUFFER_MS, SYNC_UPDATE_GRACE_MS, HEALTH_PORT,
)
from core_config.settings import Settings, get_settings


def test_sync_timings_match_constants(monkeypatch):
    """Settings defaults must mirror the shared constants."""
    for name in ("SYNC_DEBOUNCE_MS", "SYNC_AGGREGATE_DEBOUNCE_MS", "SYNC_RECENT_BUFFER_MS",
                 "SYNC_PROCESS_BUFFER_MS", "SYNC_UPDATE_GRACE_MS"):
        monkeypatch.delenv(name, raising=False)
    s = get_settings()
    assert s.sync_debounce_ms == SYNC_DEBOUNCE_MS == 1000
    assert s.sync_aggregate_debounce_ms == SYNC_AGGREGATE_DEBOUNCE_MS == 2000
    assert s.sync_recent_buffer_ms == SYNC_RECENT_BUFFER_MS
    assert s.sync_process_buffer_ms == SYNC_PROCESS_BUFFER_MS
    assert s.sync_update_grace_ms == SYNC_UPDATE_GRACE_MS
    assert isinstance(HEALTH_PORT, int)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SYNC_DEBOUNCE_MS", "250")
    monkeypatch.setenv("ENVIRONMENT", "prod")
    s = get_settings()
    assert s.sync_debounce_ms == 250
    assert s.is_dev is False
    assert Settings(ENVIRONMENT="DEV").is_dev is True


def test_capacity_defaults_mirror_constants():
    from core_config import constants

    s = Settings()
    assert s.default_hours_per_day == constants.DEFAULT_HOURS_PER_DAY
    assert s.default_days_per_week == constants.DEFAULT_DAYS_PER_WEEK
    assert s.default_duration_days == constants.DEFAULT_DURATION_DAYS
    assert s.default_timeframe_days == constants.DEFAULT_TIMEFRAME_DAYS
    assert s.end_date_stretch == constants.END_DATE_STRETCH
