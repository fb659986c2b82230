# astrotransform/core/engine.py
# -----------------------------------------------------------------------------
# Astrometry engine adapter (ERFA aligned; radians and two-part JDs throughout)
#
# Public API:
#   ErfaEngine().time_scale_convert(d1, d2, from_scale, to_scale, dut1=0.0)
#   ErfaEngine().calendar_to_julian(...) / julian_to_calendar(...)
#   ErfaEngine().catalog_to_intermediate / intermediate_to_catalog
#   ErfaEngine().catalog_to_observed / intermediate_to_observed
#   ErfaEngine().observed_to_intermediate / observed_to_catalog
#   ErfaEngine().equation_of_origins / normalize_angle
#
# Guarantees:
#   • Every call maps 1:1 onto an ERFA routine (atci13, atic13, atco13,
#     atio13, atoi13, atoc13, eo06a, anp/anpm, dtf2d/d2dtf, time scales).
#   • ERFA failures surface as AstrometryError; ERFA warnings (dubious year)
#     are left to the caller's warning filters.
#   • Stateless; safe to share between Transform instances.
# -----------------------------------------------------------------------------

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, NamedTuple, Tuple
import logging
import math

import erfa  # pyERFA

from astrotransform.core.constants import CFG
from astrotransform.core.errors import AstrometryError

__all__ = [
    "TIME_SCALES",
    "Observer",
    "ObservedPlace",
    "ErfaEngine",
    "split_jd",
]

log = logging.getLogger(__name__)

TIME_SCALES = ("TAI", "TT", "TCG", "TCB", "TDB", "UT1", "UTC")

# ───────────────────────────── Value types ─────────────────────────────

@dataclass(frozen=True)
class Observer:
    """Site + atmosphere in ERFA units (radians east/north, metres, hPa, °C, µm)."""
    longitude: float
    latitude: float
    height: float
    ut1_utc: float
    pressure: float = 0.0
    temperature: float = 0.0
    humidity: float = 0.0
    wavelength: float = CFG.wavelength_um

    def dry(self) -> "Observer":
        """Same site with zero atmosphere (ERFA skips refraction when pressure is 0)."""
        return replace(self, pressure=0.0, temperature=0.0, humidity=0.0)

    @property
    def refracting(self) -> bool:
        return self.pressure > 0.0


class ObservedPlace(NamedTuple):
    azimuth: float          # N=0, E=90
    zenith_distance: float
    hour_angle: float
    dec: float
    ra_cio: float
    eo: float               # equation of the origins (ERA - GST)


def split_jd(jd: float) -> Tuple[float, float]:
    """
    Split a JD into ERFA two-part form as (integer_day, fractional_day).

    This preserves precision vs. passing (jd, 0.0).
    """
    d1 = math.floor(jd)
    d2 = jd - d1
    if d2 >= 1.0:
        d1 += 1.0
        d2 -= 1.0
    return float(d1), float(d2)


# ───────────────────────────── Time-scale graph ─────────────────────────────

def _dtr(d1: float, d2: float) -> float:
    # TDB-TT at the geocentre; the topocentric terms vanish with u = v = 0.
    return float(erfa.dtdb(d1, d2, 0.0, 0.0, 0.0, 0.0))

_Step = Callable[[float, float, float], Tuple[float, float]]

_EDGES: Dict[Tuple[str, str], _Step] = {
    ("UTC", "TAI"): lambda a, b, _dut1: erfa.utctai(a, b),
    ("TAI", "UTC"): lambda a, b, _dut1: erfa.taiutc(a, b),
    ("TAI", "TT"):  lambda a, b, _dut1: erfa.taitt(a, b),
    ("TT", "TAI"):  lambda a, b, _dut1: erfa.tttai(a, b),
    ("TT", "TCG"):  lambda a, b, _dut1: erfa.tttcg(a, b),
    ("TCG", "TT"):  lambda a, b, _dut1: erfa.tcgtt(a, b),
    ("TT", "TDB"):  lambda a, b, _dut1: erfa.tttdb(a, b, _dtr(a, b)),
    ("TDB", "TT"):  lambda a, b, _dut1: erfa.tdbtt(a, b, _dtr(a, b)),
    ("TDB", "TCB"): lambda a, b, _dut1: erfa.tdbtcb(a, b),
    ("TCB", "TDB"): lambda a, b, _dut1: erfa.tcbtdb(a, b),
    ("UTC", "UT1"): lambda a, b, dut1: erfa.utcut1(a, b, dut1),
    ("UT1", "UTC"): lambda a, b, dut1: erfa.ut1utc(a, b, dut1),
}


def _scale_path(from_scale: str, to_scale: str) -> List[Tuple[str, str]]:
    """Shortest chain of ERFA steps between two scales (BFS over _EDGES)."""
    prev: Dict[str, str] = {from_scale: from_scale}
    queue = deque([from_scale])
    while queue:
        cur = queue.popleft()
        if cur == to_scale:
            break
        for (a, b) in _EDGES:
            if a == cur and b not in prev:
                prev[b] = a
                queue.append(b)
    path: List[Tuple[str, str]] = []
    node = to_scale
    while node != from_scale:
        path.append((prev[node], node))
        node = prev[node]
    path.reverse()
    return path


# ───────────────────────────── Engine ─────────────────────────────

class ErfaEngine:
    """Thin, stateless facade over the ERFA routines used by the transform."""

    # ── time ───────────────────────────────────────────────────────────
    def time_scale_convert(
        self,
        d1: float,
        d2: float,
        from_scale: str,
        to_scale: str,
        dut1: float = 0.0,
    ) -> Tuple[float, float]:
        src = str(from_scale).upper()
        dst = str(to_scale).upper()
        for s in (src, dst):
            if s not in TIME_SCALES:
                raise ValueError(f"Unknown time scale '{s}' (expected one of {', '.join(TIME_SCALES)})")
        a, b = float(d1), float(d2)
        for step in _scale_path(src, dst):
            try:
                a, b = _EDGES[step](a, b, float(dut1))
            except erfa.ErfaError as e:
                raise _failed(f"{step[0]}->{step[1]}", e) from e
            a, b = float(a), float(b)
        return a, b

    def calendar_to_julian(
        self,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: float = 0.0,
        scale: str = "UTC",
    ) -> Tuple[float, float]:
        try:
            d1, d2 = erfa.dtf2d(str(scale).upper(), int(year), int(month), int(day),
                                int(hour), int(minute), float(second))
        except erfa.ErfaError as e:
            raise _failed("dtf2d", e) from e
        return float(d1), float(d2)

    def julian_to_calendar(
        self,
        d1: float,
        d2: float,
        scale: str = "UTC",
        ndp: int = 3,
    ) -> Tuple[int, int, int, int, int, float]:
        """Inverse of calendar_to_julian; seconds rounded to `ndp` decimals."""
        try:
            iy, im, iday, ihmsf = erfa.d2dtf(str(scale).upper(), int(ndp), float(d1), float(d2))
        except erfa.ErfaError as e:
            raise _failed("d2dtf", e) from e
        sec = int(ihmsf["s"]) + int(ihmsf["f"]) / (10 ** int(ndp))
        return int(iy), int(im), int(iday), int(ihmsf["h"]), int(ihmsf["m"]), float(sec)

    # ── catalog ↔ CIRS ─────────────────────────────────────────────────
    def catalog_to_intermediate(
        self,
        ra: float,
        dec: float,
        tt1: float,
        tt2: float,
        pm_ra: float = 0.0,
        pm_dec: float = 0.0,
        parallax: float = 0.0,
        radial_velocity: float = 0.0,
    ) -> Tuple[float, float, float]:
        """ICRS → CIRS (ri, di, eo)."""
        ri, di, eo = erfa.atci13(ra, dec, pm_ra, pm_dec, parallax, radial_velocity, tt1, tt2)
        return float(ri), float(di), float(eo)

    def intermediate_to_catalog(self, ra_cio: float, dec: float, tt1: float, tt2: float) -> Tuple[float, float, float]:
        """CIRS → ICRS astrometric (rc, dc, eo)."""
        rc, dc, eo = erfa.atic13(ra_cio, dec, tt1, tt2)
        return float(rc), float(dc), float(eo)

    # ── catalog/CIRS → observed ────────────────────────────────────────
    def catalog_to_observed(self, ra: float, dec: float, utc1: float, utc2: float, obs: Observer) -> ObservedPlace:
        try:
            aob, zob, hob, dob, rob, eo = erfa.atco13(
                ra, dec, 0.0, 0.0, 0.0, 0.0, utc1, utc2, obs.ut1_utc,
                obs.longitude, obs.latitude, obs.height, 0.0, 0.0,
                obs.pressure, obs.temperature, obs.humidity, obs.wavelength,
            )
        except erfa.ErfaError as e:
            raise _failed("atco13", e) from e
        return ObservedPlace(float(aob), float(zob), float(hob), float(dob), float(rob), float(eo))

    def intermediate_to_observed(self, ra_cio: float, dec: float, utc1: float, utc2: float, obs: Observer) -> ObservedPlace:
        try:
            aob, zob, hob, dob, rob = erfa.atio13(
                ra_cio, dec, utc1, utc2, obs.ut1_utc,
                obs.longitude, obs.latitude, obs.height, 0.0, 0.0,
                obs.pressure, obs.temperature, obs.humidity, obs.wavelength,
            )
        except erfa.ErfaError as e:
            raise _failed("atio13", e) from e
        tt1, tt2 = self.time_scale_convert(utc1, utc2, "UTC", "TT")
        return ObservedPlace(float(aob), float(zob), float(hob), float(dob), float(rob),
                             self.equation_of_origins(tt1, tt2))

    # ── observed → CIRS/catalog ────────────────────────────────────────
    def observed_to_intermediate(
        self, kind: str, ob1: float, ob2: float, utc1: float, utc2: float, obs: Observer
    ) -> Tuple[float, float]:
        """kind: 'R' (RA_cio/Dec), 'H' (HA/Dec) or 'A' (Az/ZD)."""
        try:
            ri, di = erfa.atoi13(
                _kind(kind), ob1, ob2, utc1, utc2, obs.ut1_utc,
                obs.longitude, obs.latitude, obs.height, 0.0, 0.0,
                obs.pressure, obs.temperature, obs.humidity, obs.wavelength,
            )
        except erfa.ErfaError as e:
            raise _failed("atoi13", e) from e
        return float(ri), float(di)

    def observed_to_catalog(
        self, kind: str, ob1: float, ob2: float, utc1: float, utc2: float, obs: Observer
    ) -> Tuple[float, float]:
        try:
            rc, dc = erfa.atoc13(
                _kind(kind), ob1, ob2, utc1, utc2, obs.ut1_utc,
                obs.longitude, obs.latitude, obs.height, 0.0, 0.0,
                obs.pressure, obs.temperature, obs.humidity, obs.wavelength,
            )
        except erfa.ErfaError as e:
            raise _failed("atoc13", e) from e
        return float(rc), float(dc)

    # ── misc ───────────────────────────────────────────────────────────
    def equation_of_origins(self, tt1: float, tt2: float) -> float:
        return float(erfa.eo06a(tt1, tt2))

    def normalize_angle(self, angle: float, *, signed: bool = False) -> float:
        """[0, 2π) by default, (-π, π] when signed."""
        return float(erfa.anpm(angle) if signed else erfa.anp(angle))


def _kind(kind: str) -> str:
    k = str(kind).strip().upper()[:1]
    if k not in ("R", "H", "A"):
        raise ValueError(f"Unknown observed coordinate type '{kind}' (expected R, H or A)")
    return k


def _failed(routine: str, err: Exception) -> AstrometryError:
    log.warning("ERFA %s failed: %s", routine, err)
    return AstrometryError(f"ERFA {routine} failed: {err}")
