"""
Pytest fixtures for conflict detection tests.

Provides:
- An event factory with sensible defaults
- A timezone-aware clock helper on a fixed day
- The load-shedding configuration used in several scenarios
"""

import pytest
import pandas as pd

from conflict_detector.models import (
    DetectionConfig,
    EnvironmentalWindow,
    Event,
    EventPriority,
    EventStatus,
    EventType,
)

TZ = "Africa/Harare"
DAY = "2025-11-03"


def at(hhmm, day=DAY, tz=TZ):
    return pd.Timestamp(f"{day} {hhmm}").tz_localize(tz)


@pytest.fixture
def clock():
    """Turn 'HH:MM' into a tz-aware timestamp on the test day."""
    return at


@pytest.fixture
def make_event():
    """Factory for events; times are 'HH:MM' strings on the test day."""
    def _make(id, start, end, **kwargs):
        defaults = dict(
            title=id.upper(),
            type=EventType.MEETING,
            status=EventStatus.SCHEDULED,
            priority=EventPriority.MEDIUM,
            organizer_id="org-1",
        )
        defaults.update(kwargs)
        start_time = at(start) if isinstance(start, str) else start
        end_time = at(end) if isinstance(end, str) else end
        return Event(id=id, start_time=start_time, end_time=end_time, **defaults)
    return _make


@pytest.fixture
def default_config():
    return DetectionConfig()


@pytest.fixture
def load_shedding_config():
    return DetectionConfig(
        environmental_windows=[
            EnvironmentalWindow(start_hour=10, end_hour=14),
            EnvironmentalWindow(start_hour=18, end_hour=22),
        ],
    )
