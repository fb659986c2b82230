# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the astrotransform suite.

- Registers Hypothesis profiles for local dev and CI.
- Provides a recording ERFA engine double and a controllable clock.
- Provides a ready-made London site.
"""

import os
from collections import Counter
from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import settings, HealthCheck

from astrotransform.core.engine import ErfaEngine
from astrotransform.core.transform import Transform


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,           # avoid flaky timeouts on slower runners
        max_examples=60,         # fast local runs
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=120,        # a bit more coverage in CI
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")
    config.addinivalue_line("filterwarnings", "ignore::DeprecationWarning")
    # ERFA flags "dubious year" for dates outside its leap-second table.
    config.addinivalue_line("filterwarnings", "ignore::erfa.ErfaWarning")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Doubles
# ──────────────────────────────────────────────────────────────────────────────

# 2023-02-25 00:00:00 UTC
JD_UTC = 2460000.5
LONDON = {"latitude": 51.5, "longitude": -0.1, "elevation": 0.0, "temperature": 10.0}


class RecordingEngine(ErfaEngine):
    """Real ERFA engine that remembers which routines ran and at which dates."""

    def __init__(self):
        self.calls = Counter()
        self.tt_dates = []
        self.utc_dates = []

    def catalog_to_intermediate(self, ra, dec, tt1, tt2, *args, **kw):
        self.calls["catalog_to_intermediate"] += 1
        self.tt_dates.append(tt1 + tt2)
        return super().catalog_to_intermediate(ra, dec, tt1, tt2, *args, **kw)

    def catalog_to_observed(self, ra, dec, utc1, utc2, obs):
        self.calls["catalog_to_observed"] += 1
        self.utc_dates.append(utc1 + utc2)
        return super().catalog_to_observed(ra, dec, utc1, utc2, obs)

    def observed_to_catalog(self, kind, ob1, ob2, utc1, utc2, obs):
        self.calls["observed_to_catalog"] += 1
        self.utc_dates.append(utc1 + utc2)
        return super().observed_to_catalog(kind, ob1, ob2, utc1, utc2, obs)


class SteppingClock:
    """Returns `start`, then advances by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta):
        self.now = start
        self.step = step
        self.reads = 0

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        self.reads += 1
        return current


# ──────────────────────────────────────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock(datetime(2023, 2, 25, 0, 0, 0, tzinfo=timezone.utc), timedelta(minutes=10))


def set_site(t: Transform, **site) -> Transform:
    values = {**LONDON, **site}
    t.site_latitude = values["latitude"]
    t.site_longitude = values["longitude"]
    t.site_elevation = values["elevation"]
    t.site_temperature = values["temperature"]
    return t


@pytest.fixture
def transform() -> Transform:
    """Fixed-date transform at a complete London site, original mode."""
    t = Transform()
    set_site(t)
    t.julian_date_utc = JD_UTC
    return t


@pytest.fixture
def observed() -> Transform:
    """Same as `transform`, in observed mode."""
    t = Transform()
    t.observed_mode = True
    set_site(t)
    t.julian_date_utc = JD_UTC
    return t
