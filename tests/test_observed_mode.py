# tests/test_observed_mode.py
from __future__ import annotations

import pytest

from astrotransform.core.errors import ModeError, UnavailableError
from astrotransform.core.transform import SourceTag, Transform

from conftest import JD_UTC, set_site


def _refraction_at(observed: Transform, elevation: float) -> float:
    observed.set_azimuth_elevation(180.0, elevation)
    return observed.elevation_observed - observed.elevation_topocentric


def test_observed_values_are_refracted(observed):
    observed.set_j2000(10.0, 45.0)
    assert observed.elevation_observed > observed.elevation_topocentric
    assert observed.azimuth_observed == pytest.approx(observed.azimuth_topocentric, abs=1e-6)
    assert observed.ra_observed != observed.ra_topocentric or observed.dec_observed != observed.dec_topocentric

def test_difference_vanishes_toward_zenith(observed):
    assert _refraction_at(observed, 89.999) < 1e-5

def test_difference_shrinks_with_elevation(observed):
    diffs = [_refraction_at(observed, el) for el in (10.0, 30.0, 50.0, 70.0, 89.0)]
    assert all(d > 0.0 for d in diffs)
    assert diffs == sorted(diffs, reverse=True)
    # ~5 arcmin at 10° elevation
    assert 0.05 < diffs[0] < 0.15

def test_topocentric_matches_original_mode_without_refraction(observed, transform):
    observed.set_j2000(10.0, 45.0)
    transform.set_j2000(10.0, 45.0)
    assert observed.ra_topocentric == pytest.approx(transform.ra_topocentric, abs=1e-12)
    assert observed.elevation_topocentric == pytest.approx(transform.elevation_topocentric, abs=1e-12)

def test_refraction_flag_ignored_in_observed_mode(transform):
    transform.refraction = True
    transform.set_j2000(10.0, 45.0)
    refracted = transform.elevation_topocentric
    transform.observed_mode = True
    assert transform.requires_recompute
    assert transform.elevation_topocentric < refracted
    assert transform.elevation_observed == pytest.approx(refracted, abs=1e-9)

def test_set_observed_pins_input_and_derives_rest(observed):
    observed.set_j2000(10.0, 45.0)
    ra_obs, dec_obs = observed.ra_observed, observed.dec_observed

    observed.set_observed(ra_obs, dec_obs)
    assert observed.source_tag is SourceTag.OBSERVED
    assert observed.ra_observed == ra_obs
    assert observed.dec_observed == dec_obs
    assert observed.ra_j2000 == pytest.approx(10.0, abs=1e-7)
    assert observed.dec_j2000 == pytest.approx(45.0, abs=1e-6)

def test_set_azimuth_elevation_observed_roundtrip(observed):
    observed.set_j2000(8.0, 10.0)
    az, el = observed.azimuth_observed, observed.elevation_observed

    other = Transform()
    other.observed_mode = True
    set_site(other)
    other.julian_date_utc = JD_UTC
    other.set_azimuth_elevation_observed(az, el)
    assert other.source_tag is SourceTag.AZEL_OBSERVED
    assert other.elevation_topocentric < el
    assert other.ra_j2000 == pytest.approx(8.0, abs=1e-6)
    assert other.dec_j2000 == pytest.approx(10.0, abs=1e-5)

def test_observed_values_need_a_site():
    t = Transform()
    t.observed_mode = True
    t.julian_date_utc = JD_UTC
    t.set_j2000(10.0, 45.0)
    with pytest.raises(UnavailableError):
        t.ra_observed
    t.set_observed(10.0, 45.0)
    assert t.ra_observed == 10.0
    with pytest.raises(UnavailableError):
        t.ra_j2000

def test_leaving_observed_mode_hides_observed_values(observed):
    observed.set_j2000(10.0, 45.0)
    observed.elevation_observed
    observed.observed_mode = False
    with pytest.raises(ModeError):
        observed.elevation_observed
    observed.refraction = True
    assert observed.refraction
