import pytest

from hmpi_backend.config import get_settings

ENV_VARS = ('HMPI_LOG_LEVEL', 'HMPI_INPUT_POLICY', 'HMPI_LEADERBOARD_LIMIT', 'HMPI_TREND_DAYS')


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Every test starts from default settings"""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
