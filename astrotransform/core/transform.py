# astrotransform/core/transform.py
# -*- coding: utf-8 -*-
"""
Coordinate transform: J2000 ↔ apparent ↔ topocentric ↔ observed ↔ Az/El.

Use
---
Create a `Transform`, describe the site and instant, then supply one known
position with a `set_*` method and read any other representation back:

    t = Transform()
    t.site_latitude, t.site_longitude = 51.5, -0.1
    t.site_elevation, t.site_temperature = 0.0, 10.0
    t.julian_date_utc = 2460000.5          # 0.0 (default) = wall clock
    t.set_j2000(10.0, 45.0)
    t.azimuth_topocentric, t.elevation_topocentric

The instance is reusable: call another `set_*` to transform a new position.

Behaviour
---------
- The last `set_*` call is the single source of truth (`source_tag`); every
  other representation is derived from it lazily, on the next read.
- Derived values are cached. Any set/site/time/mode change marks the cache
  dirty; reads recompute when dirty, and always when the value depends on
  live state (observed/horizontal values, single-flag refraction, or the
  wall-clock sentinel).
- Values that need a complete site (latitude, longitude, elevation and
  temperature) raise UnavailableError until the site is complete; reading
  anything before the first `set_*` raises UninitializedError.
- Original mode: `refraction` decides whether topocentric values include
  the atmosphere. Observed mode: topocentric values never include it and
  the `*_observed` values always do; `refraction` can not be set.
- Angles: RA in hours [0, 24), everything else in degrees.

Not thread-safe; serialise access to one instance.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple
import time

from astrotransform.core.constants import (
    DEGREES2RADIANS,
    HOURS2RADIANS,
    RADIANS2DEGREES,
    RADIANS2HOURS,
)
from astrotransform.core.engine import ErfaEngine, Observer, split_jd
from astrotransform.core.errors import (
    ModeError,
    RangeError,
    UnavailableError,
    UninitializedError,
)
from astrotransform.core.logsink import null_sink, resolve_sink
from astrotransform.core.policies import Policy, Projection, project, select_policy
from astrotransform.core.site import SiteParameters
from astrotransform.core.timescales import Clock, Epoch, TimeBasis
from astrotransform.utils.metrics import Metrics

__all__ = ["SourceTag", "Representations", "Transform"]


# ───────────────────────────── State ─────────────────────────────

class SourceTag(str, Enum):
    """Which representation was last supplied as ground truth."""
    UNINITIALIZED = "uninitialized"
    J2000 = "j2000"
    APPARENT = "apparent"
    TOPOCENTRIC = "topocentric"
    OBSERVED = "observed"
    AZEL_TOPOCENTRIC = "azel_topocentric"
    AZEL_OBSERVED = "azel_observed"


@dataclass(frozen=True)
class Representations:
    """One consistent set of positions; None = can not be derived."""
    ra_j2000: Optional[float] = None
    dec_j2000: Optional[float] = None
    ra_apparent: Optional[float] = None
    dec_apparent: Optional[float] = None
    ra_topocentric: Optional[float] = None
    dec_topocentric: Optional[float] = None
    ra_observed: Optional[float] = None
    dec_observed: Optional[float] = None
    azimuth_topocentric: Optional[float] = None
    elevation_topocentric: Optional[float] = None
    azimuth_observed: Optional[float] = None
    elevation_observed: Optional[float] = None

    def with_projection(self, proj: Projection) -> "Representations":
        topo = proj.topocentric
        out = replace(
            self,
            ra_topocentric=topo.ra,
            dec_topocentric=topo.dec,
            azimuth_topocentric=topo.azimuth,
            elevation_topocentric=topo.elevation,
        )
        if proj.observed is not None:
            obs = proj.observed
            out = replace(
                out,
                ra_observed=obs.ra,
                dec_observed=obs.dec,
                azimuth_observed=obs.azimuth,
                elevation_observed=obs.elevation,
            )
        return out

    def available(self) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(self) if getattr(self, f.name) is not None)


# Fields holding the raw input of each source; pinned after every recompute.
_SOURCE_FIELDS: Dict[SourceTag, Tuple[str, str]] = {
    SourceTag.J2000: ("ra_j2000", "dec_j2000"),
    SourceTag.APPARENT: ("ra_apparent", "dec_apparent"),
    SourceTag.TOPOCENTRIC: ("ra_topocentric", "dec_topocentric"),
    SourceTag.OBSERVED: ("ra_observed", "dec_observed"),
    SourceTag.AZEL_TOPOCENTRIC: ("azimuth_topocentric", "elevation_topocentric"),
    SourceTag.AZEL_OBSERVED: ("azimuth_observed", "elevation_observed"),
}


# ───────────────────────────── Validation ─────────────────────────────

def _ra(loc: str, value: float) -> float:
    v = float(value)
    if not (0.0 <= v < 24.0):
        raise RangeError(loc, value, (0.0, 24.0), upper_open=True)
    return v


def _dec(loc: str, value: float) -> float:
    v = float(value)
    if not (-90.0 <= v <= 90.0):
        raise RangeError(loc, value, (-90.0, 90.0))
    return v


def _az(loc: str, value: float) -> float:
    v = float(value)
    if not (0.0 <= v < 360.0):
        raise RangeError(loc, value, (0.0, 360.0), upper_open=True)
    return v


# ───────────────────────────── Property factories ─────────────────────────────

def _site_property(attr: str, label: str, doc: str) -> property:
    def fget(self: "Transform") -> float:
        return getattr(self._site, attr)

    def fset(self: "Transform", value: float) -> None:
        setattr(self._site, attr, value)
        self._log(f"{label} Set", str(value))

    return property(fget, fset, doc=doc)


def _coordinate(field: str, label: str, doc: str, *, observed_only: bool = False, live: bool = False) -> property:
    def fget(self: "Transform") -> float:
        return self._read(field, label, observed_only=observed_only, live=live)

    return property(fget, doc=doc)


# ───────────────────────────── Transform ─────────────────────────────

class Transform:
    def __init__(
        self,
        logger: Any = None,
        *,
        engine: Optional[ErfaEngine] = None,
        clock: Optional[Clock] = None,
    ):
        self._log = resolve_sink(logger)
        self._engine = engine or ErfaEngine()
        self._site = SiteParameters(on_change=self._mark_dirty)
        self._time = TimeBasis(self._engine, clock, on_change=self._mark_dirty)
        self._observed_mode = False
        self._refraction = False
        self._tag = SourceTag.UNINITIALIZED
        self._input: Tuple[float, float] = (0.0, 0.0)
        self._cache = Representations()
        self._dirty = True
        self.metrics = Metrics()
        self._log("New", "Transform initialised OK")

    # ── lifecycle ──────────────────────────────────────────────────────
    def close(self) -> None:
        """Release diagnostics; the instance stays usable without them."""
        self._log("Dispose", "Releasing diagnostics")
        self.metrics.clear()
        self._log = null_sink

    def __enter__(self) -> "Transform":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    # ── configuration ──────────────────────────────────────────────────
    @property
    def observed_mode(self) -> bool:
        """
        Observed mode: topocentric values exclude refraction, `*_observed`
        values include it, and `refraction` is locked.
        """
        return self._observed_mode

    @observed_mode.setter
    def observed_mode(self, value: bool) -> None:
        v = bool(value)
        if v != self._observed_mode:
            self._observed_mode = v
            self._mark_dirty("observed_mode")
        self._log("ObservedMode Set", str(v))

    @property
    def refraction(self) -> bool:
        """Original mode only: include refraction in topocentric values."""
        return self._refraction

    @refraction.setter
    def refraction(self, value: bool) -> None:
        if self._observed_mode:
            raise ModeError("Setting refraction is invalid when observed_mode is True")
        v = bool(value)
        if v != self._refraction:
            self._refraction = v
            self._mark_dirty("refraction")
        self._log("Refraction Set", str(v))

    site_latitude = _site_property("latitude", "SiteLatitude", "Site latitude in degrees (-90..90), north positive.")
    site_longitude = _site_property("longitude", "SiteLongitude", "Site longitude in degrees (-180..180), east positive.")
    site_elevation = _site_property("elevation", "SiteElevation", "Site height above sea level in metres (-300..10000).")
    site_temperature = _site_property("temperature", "SiteTemperature", "Ambient site temperature in Celsius (-273.15..100).")
    site_pressure = _site_property(
        "pressure", "SitePressure",
        "Site pressure in hPa (0..1200); derived from elevation and temperature until set.",
    )
    site_relative_humidity = _site_property("humidity", "SiteRelativeHumidity", "Relative humidity, 0.0..1.0.")
    delta_ut1 = _site_property("ut1_utc", "DeltaUT1", "UT1-UTC in seconds.")

    @property
    def julian_date_tt(self) -> float:
        """TT Julian date of the transform; 0.0 means the wall clock."""
        return self._time.julian_date_tt

    @julian_date_tt.setter
    def julian_date_tt(self, value: float) -> None:
        self._time.julian_date_tt = value
        self._log_time("JulianDateTT Set")

    @property
    def julian_date_utc(self) -> float:
        """UTC Julian date of the transform; 0.0 means the wall clock."""
        return self._time.julian_date_utc

    @julian_date_utc.setter
    def julian_date_utc(self, value: float) -> None:
        self._time.julian_date_utc = value
        self._log_time("JulianDateUTC Set")

    @property
    def source_tag(self) -> SourceTag:
        return self._tag

    @property
    def requires_recompute(self) -> bool:
        return self._dirty

    # ── set ────────────────────────────────────────────────────────────
    def set_j2000(self, ra: float, dec: float) -> None:
        """Known J2000 (ICRS catalog) position: RA hours [0, 24), Dec degrees."""
        self._set_source(SourceTag.J2000, _ra("SetJ2000 RA", ra), _dec("SetJ2000 Dec", dec))

    def set_apparent(self, ra: float, dec: float) -> None:
        """Known apparent (geocentric, equinox of date) position."""
        self._set_source(SourceTag.APPARENT, _ra("SetApparent RA", ra), _dec("SetApparent Dec", dec))

    def set_topocentric(self, ra: float, dec: float) -> None:
        """Known topocentric position; refraction as per the active mode."""
        self._set_source(SourceTag.TOPOCENTRIC, _ra("SetTopocentric RA", ra), _dec("SetTopocentric Dec", dec))

    def set_observed(self, ra: float, dec: float) -> None:
        """Known observed (refracted) position. Observed mode only."""
        if not self._observed_mode:
            raise ModeError("set_observed() can only be called in observed mode")
        self._set_source(SourceTag.OBSERVED, _ra("SetObserved RA", ra), _dec("SetObserved Dec", dec))

    def set_azimuth_elevation(self, azimuth: float, elevation: float) -> None:
        """Known topocentric azimuth (N=0, E=90) and elevation in degrees."""
        self._set_source(
            SourceTag.AZEL_TOPOCENTRIC,
            _az("SetAzimuthElevation Azimuth", azimuth),
            _dec("SetAzimuthElevation Elevation", elevation),
        )

    def set_azimuth_elevation_observed(self, azimuth: float, elevation: float) -> None:
        """Known refracted azimuth and elevation. Observed mode only."""
        if not self._observed_mode:
            raise ModeError("set_azimuth_elevation_observed() can only be called in observed mode")
        self._set_source(
            SourceTag.AZEL_OBSERVED,
            _az("SetAzimuthElevationObserved Azimuth", azimuth),
            _dec("SetAzimuthElevationObserved Elevation", elevation),
        )

    def refresh(self) -> None:
        """Recompute everything from the last set position now."""
        self._log("Refresh", "")
        self._recompute(force=True)

    # ── get ────────────────────────────────────────────────────────────
    ra_j2000 = _coordinate("ra_j2000", "RAJ2000", "J2000 right ascension, hours.")
    dec_j2000 = _coordinate("dec_j2000", "DecJ2000", "J2000 declination, degrees.")
    ra_apparent = _coordinate("ra_apparent", "RAApparent", "Apparent right ascension, hours.")
    dec_apparent = _coordinate("dec_apparent", "DecApparent", "Apparent declination, degrees.")
    ra_topocentric = _coordinate("ra_topocentric", "RATopocentric", "Topocentric right ascension, hours.")
    dec_topocentric = _coordinate("dec_topocentric", "DecTopocentric", "Topocentric declination, degrees.")
    ra_observed = _coordinate(
        "ra_observed", "RAObserved", "Observed (refracted) right ascension, hours.", observed_only=True, live=True
    )
    dec_observed = _coordinate(
        "dec_observed", "DecObserved", "Observed (refracted) declination, degrees.", observed_only=True, live=True
    )
    azimuth_topocentric = _coordinate(
        "azimuth_topocentric", "AzimuthTopocentric", "Topocentric azimuth, degrees.", live=True
    )
    elevation_topocentric = _coordinate(
        "elevation_topocentric", "ElevationTopocentric", "Topocentric elevation, degrees.", live=True
    )
    azimuth_observed = _coordinate(
        "azimuth_observed", "AzimuthObserved", "Observed (refracted) azimuth, degrees.", observed_only=True, live=True
    )
    elevation_observed = _coordinate(
        "elevation_observed", "ElevationObserved", "Observed (refracted) elevation, degrees.",
        observed_only=True, live=True,
    )

    # ── internals: state ───────────────────────────────────────────────
    def _mark_dirty(self, reason: str) -> None:
        self._dirty = True
        self._log("Changed", reason)

    def _set_source(self, tag: SourceTag, a: float, b: float) -> None:
        self._tag = tag
        self._input = (a, b)
        self._dirty = True
        self._log(f"Set {tag.value}", f"{a!r}, {b!r}")

    @property
    def _single_flag_refraction(self) -> bool:
        return self._refraction and not self._observed_mode

    def _read(self, field: str, label: str, *, observed_only: bool, live: bool) -> float:
        if observed_only and not self._observed_mode:
            raise ModeError(f"{label} is only available in observed mode")
        if self._tag is SourceTag.UNINITIALIZED:
            raise UninitializedError(f"Attempt to read {label} before a set method has been called")

        self._recompute(force=live or self._single_flag_refraction)

        value = getattr(self._cache, field)
        if value is None:
            self._log(f"{label} Get", "unavailable")
            raise UnavailableError(f"{label} can not be derived from the information provided. Are site parameters set?")
        self._log(f"{label} Get", f"{value:.9f}")
        return value

    def _recompute(self, *, force: bool = False) -> None:
        if self._tag is SourceTag.UNINITIALIZED:
            raise UninitializedError("Can not recompute before a set method has been called")
        if not (force or self._dirty or self._time.uses_wall_clock):
            self._log("Recalculate", "No parameters have changed, recalculation not required")
            return

        t0 = time.perf_counter()
        epoch = self._time.resolve()
        policy = select_policy(self._observed_mode)
        self._log(
            "Recalculate",
            f"Source: {self._tag.value}, dirty: {self._dirty}, observed mode: {self._observed_mode}, "
            f"refraction: {self._refraction}, site complete: {self._site.complete}, JD(UTC): {epoch.jd_utc!r}",
        )

        reps = self._PATHS[self._tag](self, epoch, policy)
        reps = replace(reps, **dict(zip(_SOURCE_FIELDS[self._tag], self._input)))

        # Swap in only once everything above succeeded.
        self._cache = reps
        self._dirty = False

        dt = (time.perf_counter() - t0) * 1000.0
        labels = {"source": self._tag.value}
        self.metrics.inc("transform_recomputes_total", 1.0, labels)
        self.metrics.observe("transform_recompute_ms", dt, labels)
        self._log("Recalculate", f"Completed in {dt:.2f}ms, available: {', '.join(reps.available())}")

    # ── internals: recompute paths ─────────────────────────────────────
    def _from_j2000(self, epoch: Epoch, policy: Policy) -> Representations:
        ra, dec = self._input
        reps = Representations(ra_j2000=ra, dec_j2000=dec)
        reps = replace(reps, **self._apparent_fields(ra, dec, epoch))
        if not self._site.complete:
            return reps
        return self._project_into(reps, epoch, policy)

    def _from_apparent(self, epoch: Epoch, policy: Policy) -> Representations:
        ra_app, dec_app = self._input
        ra, dec = self._catalog_from_apparent(ra_app, dec_app, epoch)
        reps = Representations(ra_j2000=ra, dec_j2000=dec, ra_apparent=ra_app, dec_apparent=dec_app)
        if not self._site.complete:
            return reps
        return self._project_into(reps, epoch, policy)

    def _from_topocentric(self, epoch: Epoch, policy: Policy) -> Representations:
        if not self._site.complete:
            return Representations()
        observer = policy(self._site.observer(), self._refraction).topocentric
        return self._from_catalog(*self._catalog_from_observed("R", *self._input, epoch, observer), epoch, policy)

    def _from_observed(self, epoch: Epoch, policy: Policy) -> Representations:
        if not self._site.complete:
            return Representations()
        observer = self._site.observer()
        return self._from_catalog(*self._catalog_from_observed("R", *self._input, epoch, observer), epoch, policy)

    def _from_azel_topocentric(self, epoch: Epoch, policy: Policy) -> Representations:
        if not self._site.complete:
            return Representations()
        observer = policy(self._site.observer(), self._refraction).topocentric
        return self._from_catalog(*self._catalog_from_observed("A", *self._input, epoch, observer), epoch, policy)

    def _from_azel_observed(self, epoch: Epoch, policy: Policy) -> Representations:
        if not self._site.complete:
            return Representations()
        observer = self._site.observer()
        return self._from_catalog(*self._catalog_from_observed("A", *self._input, epoch, observer), epoch, policy)

    _PATHS: Dict[SourceTag, Callable[["Transform", Epoch, Policy], Representations]] = {
        SourceTag.J2000: _from_j2000,
        SourceTag.APPARENT: _from_apparent,
        SourceTag.TOPOCENTRIC: _from_topocentric,
        SourceTag.OBSERVED: _from_observed,
        SourceTag.AZEL_TOPOCENTRIC: _from_azel_topocentric,
        SourceTag.AZEL_OBSERVED: _from_azel_observed,
    }

    # ── internals: single steps (hours/degrees in, hours/degrees out) ─
    def _from_catalog(self, ra: float, dec: float, epoch: Epoch, policy: Policy) -> Representations:
        reps = Representations(ra_j2000=ra, dec_j2000=dec)
        reps = replace(reps, **self._apparent_fields(ra, dec, epoch))
        return self._project_into(reps, epoch, policy)

    def _apparent_fields(self, ra: float, dec: float, epoch: Epoch) -> Dict[str, float]:
        eng = self._engine
        ri, di, eo = eng.catalog_to_intermediate(ra * HOURS2RADIANS, dec * DEGREES2RADIANS, epoch.tt1, epoch.tt2)
        ra_app = eng.normalize_angle(ri - eo) * RADIANS2HOURS
        dec_app = di * RADIANS2DEGREES
        self._log("J2000 To Apparent", f"RA/Dec: {ra_app:.9f} {dec_app:.9f}")
        return {"ra_apparent": ra_app, "dec_apparent": dec_app}

    def _catalog_from_apparent(self, ra: float, dec: float, epoch: Epoch) -> Tuple[float, float]:
        eng = self._engine
        eo = eng.equation_of_origins(epoch.tt1, epoch.tt2)
        ra_cio = eng.normalize_angle(ra * HOURS2RADIANS + eo)
        rc, dc, _eo = eng.intermediate_to_catalog(ra_cio, dec * DEGREES2RADIANS, epoch.tt1, epoch.tt2)
        ra_j2000 = eng.normalize_angle(rc) * RADIANS2HOURS
        dec_j2000 = dc * RADIANS2DEGREES
        self._log("Apparent To J2000", f"RA/Dec: {ra_j2000:.9f} {dec_j2000:.9f}")
        return ra_j2000, dec_j2000

    def _catalog_from_observed(
        self, kind: str, a: float, b: float, epoch: Epoch, observer: Observer
    ) -> Tuple[float, float]:
        """kind 'R': RA hours / Dec degrees; kind 'A': azimuth / elevation degrees."""
        eng = self._engine
        if kind == "R":
            eo = eng.equation_of_origins(epoch.tt1, epoch.tt2)
            ob1, ob2 = eng.normalize_angle(a * HOURS2RADIANS + eo), b * DEGREES2RADIANS
        else:
            ob1, ob2 = a * DEGREES2RADIANS, (90.0 - b) * DEGREES2RADIANS
        rc, dc = eng.observed_to_catalog(kind, ob1, ob2, epoch.utc1, epoch.utc2, observer)
        ra_j2000 = eng.normalize_angle(rc) * RADIANS2HOURS
        dec_j2000 = dc * RADIANS2DEGREES
        self._log(
            "Observed To J2000",
            f"{kind} input: {a!r} {b!r}, pressure: {observer.pressure:.2f}hPa, RA/Dec: {ra_j2000:.9f} {dec_j2000:.9f}",
        )
        return ra_j2000, dec_j2000

    def _project_into(self, reps: Representations, epoch: Epoch, policy: Policy) -> Representations:
        plan = policy(self._site.observer(), self._refraction)
        proj = project(
            self._engine,
            reps.ra_j2000 * HOURS2RADIANS,
            reps.dec_j2000 * DEGREES2RADIANS,
            epoch.utc1,
            epoch.utc2,
            plan,
        )
        topo = proj.topocentric
        self._log(
            "J2000 To Topocentric",
            f"RA/Dec: {topo.ra:.9f} {topo.dec:.9f}, Az/El: {topo.azimuth:.9f} {topo.elevation:.9f}, "
            f"refracted: {plan.topocentric.refracting}",
        )
        if proj.observed is not None:
            obs = proj.observed
            self._log(
                "J2000 To Observed",
                f"RA/Dec: {obs.ra:.9f} {obs.dec:.9f}, Az/El: {obs.azimuth:.9f} {obs.elevation:.9f}, "
                f"refraction: {(obs.elevation - topo.elevation) * 3600.0:.1f} arcseconds",
            )
        return reps.with_projection(proj)

    # ── internals: logging ─────────────────────────────────────────────
    def _log_time(self, operation: str) -> None:
        if self._log is null_sink:
            return
        if self._time.uses_wall_clock:
            self._log(operation, "Calculations will now be based on the wall clock")
            return
        utc = self._engine.julian_to_calendar(*split_jd(self._time.julian_date_utc), "UTC")
        self._log(
            operation,
            f"JDTT: {self._time.julian_date_tt!r}, JDUTC: {self._time.julian_date_utc!r} "
            f"({utc[0]:04d}-{utc[1]:02d}-{utc[2]:02d} {utc[3]:02d}:{utc[4]:02d}:{utc[5]:06.3f} UTC)",
        )
