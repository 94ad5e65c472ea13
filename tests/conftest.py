"""Shared test fixtures for the pattern engine tests."""

from datetime import UTC, datetime

import pytest

from src.domains.patterns.config import PatternDetectionConfig
from src.domains.patterns.detector import PatternDetector

# Fixed reference instant so trailing windows are deterministic
NOW = datetime(2026, 1, 15, 14, 0, 0, tzinfo=UTC)
NOW_MS = int(NOW.timestamp() * 1000)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS


def make_tx(**kwargs) -> dict:
    """Raw transaction record as a history source would supply it."""
    defaults = {
        "id": "tx-001",
        "from": "0xUser",
        "to": "0xRecipient",
        "amount": 100.0,
        "timestamp": NOW_MS,
        "type": "transfer",
    }
    defaults.update(kwargs)
    return defaults


@pytest.fixture
def utc_config() -> PatternDetectionConfig:
    config = PatternDetectionConfig()
    config.velocity.reporting_timezone = "UTC"
    return config


@pytest.fixture
def detector(utc_config: PatternDetectionConfig) -> PatternDetector:
    return PatternDetector(utc_config)
