"""Shared fixtures: keep tests off the real home directory and environment."""

import pytest

from council import config as council_config
from council.core import history


@pytest.fixture(autouse=True)
def _isolated_council(tmp_path, monkeypatch):
    monkeypatch.setattr(council_config, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(council_config, "CONFIG_FILE", tmp_path / "config" / "config.json")
    monkeypatch.setattr(council_config, "_dotenv_loaded", True)
    monkeypatch.setattr(history, "_HISTORY_FILE", tmp_path / "history.db")
    for var in (
        "OPENROUTER_API_KEY",
        "COUNCIL_ENV",
        "COUNCIL_SANDBOX",
        "COUNCIL_INITIAL_BALANCE",
        "COUNCIL_LOW_BALANCE_THRESHOLD",
        "COUNCIL_MAX_RETRIES",
        "COUNCIL_TIMEOUT_SECONDS",
        "COUNCIL_LOG_REQUESTS",
    ):
        monkeypatch.delenv(var, raising=False)
    council_config.reset_config()
    yield
    council_config.reset_config()
