# tests/test_engine.py
from __future__ import annotations

import math
import pytest

from astrotransform.core.engine import ErfaEngine, Observer, split_jd
from astrotransform.core.errors import AstrometryError
from astrotransform.core.constants import DEGREES2RADIANS, HOURS2RADIANS

ENG = ErfaEngine()
UTC = split_jd(2460000.5)
TT = ENG.time_scale_convert(*UTC, "UTC", "TT")

LONDON = Observer(
    longitude=-0.1 * DEGREES2RADIANS,
    latitude=51.5 * DEGREES2RADIANS,
    height=0.0,
    ut1_utc=0.0,
    pressure=1013.25,
    temperature=10.0,
    humidity=0.5,
)

def _sep(a: float, b: float) -> float:
    """Smallest angular difference, radians."""
    return abs(ENG.normalize_angle(a - b, signed=True))


# ─────────────────────────────────────────────────────────────────────────────
# Time
# ─────────────────────────────────────────────────────────────────────────────

def test_split_jd_keeps_sum():
    d1, d2 = split_jd(2460000.75)
    assert d1 == 2460000.0
    assert d2 == pytest.approx(0.75)
    assert 0.0 <= d2 < 1.0

def test_utc_to_tt_offset_2023():
    # TAI-UTC = 37 s, TT-TAI = 32.184 s
    dt = ((TT[0] - UTC[0]) + (TT[1] - UTC[1])) * 86400.0
    assert dt == pytest.approx(69.184, abs=1e-6)

def test_tt_to_utc_inverts():
    u1, u2 = ENG.time_scale_convert(*TT, "TT", "UTC")
    assert (u1 + u2) == pytest.approx(2460000.5, abs=1e-9)

def test_ut1_uses_dut1():
    u1, u2 = ENG.time_scale_convert(*UTC, "UTC", "UT1", dut1=0.3)
    assert ((u1 - UTC[0]) + (u2 - UTC[1])) * 86400.0 == pytest.approx(0.3, abs=1e-5)

def test_multi_step_chain_reaches_tcb():
    b1, b2 = ENG.time_scale_convert(*UTC, "utc", "tcb")
    back = ENG.time_scale_convert(b1, b2, "TCB", "UTC")
    assert sum(back) == pytest.approx(2460000.5, abs=1e-8)

def test_tdb_close_to_tt():
    d1, d2 = ENG.time_scale_convert(*TT, "TT", "TDB")
    assert abs(((d1 - TT[0]) + (d2 - TT[1])) * 86400.0) < 0.002

def test_unknown_scale_rejected():
    with pytest.raises(ValueError):
        ENG.time_scale_convert(*UTC, "UTC", "GPS")

def test_calendar_roundtrip():
    d1, d2 = ENG.calendar_to_julian(2023, 2, 25, 6, 30, 15.5)
    assert d1 + d2 == pytest.approx(2460000.5 + (6.5 * 3600 + 15.5) / 86400.0, abs=1e-9)
    y, m, d, h, mi, s = ENG.julian_to_calendar(d1, d2)
    assert (y, m, d, h, mi) == (2023, 2, 25, 6, 30)
    assert s == pytest.approx(15.5, abs=1e-3)

def test_calendar_bad_month_is_astrometry_error():
    with pytest.raises(AstrometryError) as ei:
        ENG.calendar_to_julian(2023, 13, 1)
    assert ei.value.code == "astrometry_failed"


# ─────────────────────────────────────────────────────────────────────────────
# Astrometry
# ─────────────────────────────────────────────────────────────────────────────

def test_catalog_intermediate_roundtrip():
    ra, dec = 10.0 * HOURS2RADIANS, 45.0 * DEGREES2RADIANS
    ri, di, eo = ENG.catalog_to_intermediate(ra, dec, *TT)
    rc, dc, eo2 = ENG.intermediate_to_catalog(ri, di, *TT)
    assert _sep(rc, ra) < 1e-11
    assert abs(dc - dec) < 1e-11
    assert eo == pytest.approx(eo2)
    assert eo == pytest.approx(ENG.equation_of_origins(*TT))

def test_observed_place_fields():
    place = ENG.catalog_to_observed(10.0 * HOURS2RADIANS, 45.0 * DEGREES2RADIANS, *UTC, LONDON)
    assert 0.0 <= place.azimuth < 2 * math.pi
    assert 0.0 <= place.zenith_distance <= math.pi
    assert place.eo == pytest.approx(ENG.equation_of_origins(*TT), abs=1e-9)

def test_observed_catalog_roundtrip_both_kinds():
    ra, dec = 10.0 * HOURS2RADIANS, 45.0 * DEGREES2RADIANS
    place = ENG.catalog_to_observed(ra, dec, *UTC, LONDON)
    for kind, a, b in (("A", place.azimuth, place.zenith_distance), ("R", place.ra_cio, place.dec)):
        rc, dc = ENG.observed_to_catalog(kind, a, b, *UTC, LONDON)
        assert _sep(rc, ra) < 1e-7
        assert abs(dc - dec) < 1e-7

def test_intermediate_observed_matches_catalog_path():
    # Geocentric vs site-based aberration differ by well under an arcsecond.
    ra, dec = 10.0 * HOURS2RADIANS, 45.0 * DEGREES2RADIANS
    ri, di, _eo = ENG.catalog_to_intermediate(ra, dec, *TT)
    via_cirs = ENG.intermediate_to_observed(ri, di, *UTC, LONDON)
    direct = ENG.catalog_to_observed(ra, dec, *UTC, LONDON)
    assert _sep(via_cirs.azimuth, direct.azimuth) < 1e-4
    assert abs(via_cirs.zenith_distance - direct.zenith_distance) < 1e-5
    ri2, di2 = ENG.observed_to_intermediate("A", direct.azimuth, direct.zenith_distance, *UTC, LONDON)
    assert _sep(ri2, ri) < 1e-5
    assert abs(di2 - di) < 1e-5

def test_dry_observer_has_no_refraction():
    dry = LONDON.dry()
    assert not dry.refracting and LONDON.refracting
    ra, dec = 10.0 * HOURS2RADIANS, 45.0 * DEGREES2RADIANS
    wet = ENG.catalog_to_observed(ra, dec, *UTC, LONDON)
    plain = ENG.catalog_to_observed(ra, dec, *UTC, dry)
    assert wet.zenith_distance < plain.zenith_distance
    assert _sep(wet.azimuth, plain.azimuth) < 1e-10

def test_unknown_observed_kind_rejected():
    with pytest.raises(ValueError):
        ENG.observed_to_catalog("X", 0.0, 0.0, *UTC, LONDON)

def test_normalize_angle_ranges():
    assert ENG.normalize_angle(-0.5) == pytest.approx(2 * math.pi - 0.5)
    assert ENG.normalize_angle(7.0) == pytest.approx(7.0 - 2 * math.pi)
    assert ENG.normalize_angle(4.0, signed=True) == pytest.approx(4.0 - 2 * math.pi)
